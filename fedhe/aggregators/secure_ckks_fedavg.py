from .base_aggregator import BaseAggregator
from ..core.payload import EncryptedModel, EncryptedTensor
from ..core.types import FederatedModel
from ..core.validation import normalize_weights, split_contributions
from ..exceptions import InvalidInputError
from ..fhe.ckks_context import CKKSContextManager
from ..fhe.homomorphic_aggregator import CKKSHomomorphicAggregator
from typing import Any, List, Sequence, Tuple
import logging
import time

class SecureCkksFedAvg(BaseAggregator):
    """
    Federated Averaging over CKKS ciphertexts.

    Every contribution is an EncryptedModel; each tensor chunk is combined
    across learners with a homomorphic weighted average. The result stays
    encrypted; decrypting it is left to a private-key holder.
    """
    strategy_name = "ckks_fedavg"
    needs_crypto_context = True

    def __init__(self, crypto_context: CKKSContextManager, benchmark_manager: Any = None):
        super().__init__(benchmark_manager)
        if crypto_context is None:
            raise InvalidInputError(f"{self.strategy_name} needs a CKKS crypto context.")
        self.crypto_context = crypto_context
        self.homomorphic_aggregator = CKKSHomomorphicAggregator(crypto_context, benchmark_manager)

    @property
    def requires_plaintext_updates(self) -> bool:
        return False

    def compute_weighted_average(self, ciphertexts: Sequence[bytes], weights: Sequence[float]) -> bytes:
        """Weighted average of single ciphertexts; see CKKSHomomorphicAggregator."""
        return self.homomorphic_aggregator.compute_weighted_average(ciphertexts, weights)

    def aggregate(self, pairs: Sequence[Tuple[EncryptedModel, float]]) -> FederatedModel:
        encrypted_updates, weights = split_contributions(pairs)
        # Validate and normalize once, then reuse for every chunk
        normalized_weights = normalize_weights(weights, len(encrypted_updates))

        reference = encrypted_updates[0]
        if not isinstance(reference, EncryptedModel):
            raise InvalidInputError(f"{self.name} expects EncryptedModel contributions.")
        reference_signature = reference.signature()
        for i, update in enumerate(encrypted_updates[1:], start=1):
            if not isinstance(update, EncryptedModel) or update.signature() != reference_signature:
                raise InvalidInputError(
                    f"Encrypted model {i} does not match the tensors/chunks of model 0.",
                    {"expected": reference_signature})

        start_time = time.time()
        tensors = {}
        for name, tensor in reference.tensors.items():
            aggregated_chunks: List[bytes] = []
            for chunk_index in range(len(tensor.chunks)):
                chunks_for_this_index = [update.tensors[name].chunks[chunk_index] for update in encrypted_updates]
                aggregated_chunks.append(
                    self.compute_weighted_average(chunks_for_this_index, normalized_weights))
            tensors[name] = EncryptedTensor(shape=tensor.shape, length=tensor.length,
                                            chunks=tuple(aggregated_chunks))

        duration = time.time() - start_time
        logging.getLogger(__name__).info(
            f"Encrypted aggregation of {len(encrypted_updates)} models "
            f"({len(tensors)} tensors) finished in {duration:.4f}s.")
        return FederatedModel(
            model=EncryptedModel(tensors=tensors),
            num_contributors=len(encrypted_updates),
            aggregation_strategy=self.name,
            encrypted=True,
        )
