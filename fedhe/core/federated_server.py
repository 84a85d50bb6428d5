from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import time

from ..aggregators import aggregator_registry, get_aggregator
from ..exceptions import FedHEError, InvalidInputError
from .benchmark_manager import BenchmarkManager
from .payload import ClientPayload, extract_contributions
from .types import FederatedModel

class FederatedServer:
    """
    The aggregation side of a federation round. It combines learner models
    with the selected strategy but NEVER decrypts: in encrypted mode it only
    holds the crypto context and evaluation key, and returns an encrypted
    federated model that a private-key holder decrypts.
    """
    def __init__(self,
                 use_fhe: bool = True,
                 aggregator_name: str = "auto",
                 aggregator_args: Optional[Dict] = None,
                 fhe_manager: Any = None,
                 enable_benchmarking: bool = False,
                 benchmark_manager: BenchmarkManager = None):

        self.use_fhe = use_fhe
        self.fhe_manager = fhe_manager
        if self.use_fhe and self.fhe_manager is None:
            raise InvalidInputError("Encrypted aggregation needs an FHE manager (e.g. fedhe.fhe.CKKS).")

        # Allow an external BenchmarkManager to be supplied (useful for tests)
        if benchmark_manager is not None:
            self.benchmark_manager = benchmark_manager
        else:
            self.benchmark_manager = BenchmarkManager() if enable_benchmarking else None

        if aggregator_name == "auto":
            aggregator_name = "ckks_fedavg" if self.use_fhe else "plaintext_fedavg"

        aggregator_args = dict(aggregator_args or {})
        aggregator_class = aggregator_registry.get(aggregator_name)
        if self.use_fhe and getattr(aggregator_class, "needs_crypto_context", False):
            aggregator_args.setdefault("crypto_context", self.fhe_manager.context)
        self.aggregator = get_aggregator(aggregator_name, benchmark_manager=self.benchmark_manager,
                                         **aggregator_args)

        if self.use_fhe and self.aggregator.requires_plaintext_updates:
            raise InvalidInputError(
                f"Aggregator '{self.aggregator.name}' needs plaintext updates, "
                "but the server never decrypts in encrypted mode.")
        if not self.use_fhe and not self.aggregator.requires_plaintext_updates:
            raise InvalidInputError(f"Aggregator '{self.aggregator.name}' only works on encrypted updates.")

        self.global_iteration = 0
        if self.use_fhe:
            logging.getLogger(__name__).info(
                f"Server initialized in encrypted mode. Aggregator: {self.aggregator.name}.")
        else:
            logging.getLogger(__name__).info(
                f"Server initialized in plaintext trusted mode. Aggregator: {self.aggregator.name}.")

    def get_crypto_params_files(self) -> Optional[Dict[str, str]]:
        """Artifact locations to hand out to learners; None in plaintext mode."""
        if not self.use_fhe:
            return None
        return self.fhe_manager.get_crypto_params_files()

    def aggregate_round(self, contributions: Sequence[Tuple[Any, float]]) -> FederatedModel:
        """
        Aggregate one round of (model, weight) pairs or ClientPayloads.

        A malformed round raises and leaves the server ready for the next one.
        """
        if contributions and all(isinstance(c, ClientPayload) for c in contributions):
            contributions = extract_contributions(list(contributions))

        round_num = self.global_iteration + 1
        if self.benchmark_manager:
            self.benchmark_manager.set_round(round_num)

        start = time.time()
        try:
            federated_model = self.aggregator.aggregate(contributions)
        except FedHEError as e:
            logging.getLogger(__name__).error(f"Round {round_num} aggregation failed: {e}")
            raise
        duration = time.time() - start

        self.global_iteration = round_num
        federated_model.global_iteration = round_num
        if self.benchmark_manager:
            self.benchmark_manager.log_event('Server', 'Round Aggregation Time', duration, 'seconds')
        logging.getLogger(__name__).info(
            f"Round {round_num}: aggregated {federated_model.num_contributors} contributions "
            f"with {self.aggregator.name} in {duration:.4f}s")
        return federated_model
