from abc import ABC, abstractmethod
from typing import Any, Sequence, Tuple

from ..core.types import FederatedModel


class BaseAggregator(ABC):
    """Abstract Base Class for all aggregation strategies."""

    # Registry name of the strategy, overridden by concrete classes
    strategy_name: str = "base"
    # Whether the constructor takes the CKKS crypto context
    needs_crypto_context: bool = False

    def __init__(self, benchmark_manager: Any = None):
        self.benchmark_manager = benchmark_manager

    @property
    def name(self) -> str:
        """Identifies the active strategy for logging and selection."""
        return self.strategy_name

    @property
    @abstractmethod
    def requires_plaintext_updates(self) -> bool:
        pass

    @abstractmethod
    def aggregate(self, pairs: Sequence[Tuple[Any, float]]) -> FederatedModel:
        """
        Combines learner models into one federated model.

        Args:
            pairs: (model, scaling factor) per learner. Models are plaintext
                or encrypted depending on `requires_plaintext_updates`.

        Raises:
            InvalidInputError: empty input, weight problems, or models whose
                tensors do not line up.
        """
        pass

    def __repr__(self):
        return f"{self.__class__.__name__}(name='{self.name}')"
