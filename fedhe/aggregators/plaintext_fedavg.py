from .base_aggregator import BaseAggregator
from ..core.types import FederatedModel, Model, model_signature
from ..core.validation import normalize_weights, split_contributions
from ..exceptions import InvalidInputError
from typing import Sequence, Tuple
import numpy as np
import logging
import time

class PlaintextFedAvg(BaseAggregator):
    """
    Non-secure, plaintext Federated Averaging.

    Each output tensor is ``sum(w_i * model_i) / sum(w_i)``, per position.
    Used when encryption is disabled, and as the reference result for the
    homomorphic path.
    """
    strategy_name = "plaintext_fedavg"

    @property
    def requires_plaintext_updates(self) -> bool:
        return True # This aggregator only works on plaintext data.

    def aggregate(self, pairs: Sequence[Tuple[Model, float]]) -> FederatedModel:
        models, weights = split_contributions(pairs)
        weights = normalize_weights(weights, len(models))

        reference = models[0]
        if not isinstance(reference, dict):
            raise InvalidInputError(f"{self.name} expects plaintext models (dict of arrays).")
        reference_signature = model_signature(reference)
        for i, model in enumerate(models[1:], start=1):
            if not isinstance(model, dict) or model_signature(model) != reference_signature:
                raise InvalidInputError(
                    f"Model {i} does not match the tensor names/shapes of model 0.",
                    {"expected": reference_signature})

        start_time = time.time()
        averaged_model: Model = {}
        for name in reference:
            try:
                weighted_sum = np.zeros(np.shape(reference[name]), dtype=np.float64)
                for model, weight in zip(models, weights):
                    weighted_sum += np.asarray(model[name], dtype=np.float64) * weight
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"Tensor '{name}' is not numeric: {e}") from e
            averaged_model[name] = weighted_sum

        duration = time.time() - start_time
        if self.benchmark_manager:
            self.benchmark_manager.log_event('Server', 'Plaintext Aggregation Time', duration, 'seconds')

        logging.getLogger(__name__).info(
            f"Plaintext aggregation of {len(models)} models finished in {duration:.6f}s.")
        return FederatedModel(
            model=averaged_model,
            num_contributors=len(models),
            aggregation_strategy=self.name,
            encrypted=False,
        )
