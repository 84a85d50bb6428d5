from typing import Any, List, Sequence
import logging
import time

from ..core.validation import normalize_weights
from ..exceptions import InvalidInputError
from . import serialization
from .ckks_context import CKKSContextManager


class CKKSHomomorphicAggregator:
    """
    Weighted average of CKKS ciphertexts without decryption.

    Only the crypto context and the evaluation-multiplication key are used.
    The private key is never touched, so the aggregating party can run with
    a context that holds no secret material at all.
    """

    def __init__(self, context: CKKSContextManager, benchmark_manager: Any = None):
        self.context = context
        self.benchmark_manager = benchmark_manager

    def compute_weighted_average(self, ciphertexts: Sequence[bytes], weights: Sequence[float]) -> bytes:
        """
        Homomorphic sum of ``ciphertext_i * w_i / sum(w)``.

        Weights are raw contribution values (e.g. sample counts) and are
        normalized here; weights that already sum to 1 are left as they are.
        """
        if ciphertexts is None or len(ciphertexts) == 0:
            raise InvalidInputError("Cannot aggregate an empty list of ciphertexts.")
        normalized_weights = normalize_weights(weights, len(ciphertexts))
        self.context.require_eval_mult_key()
        cc = self.context.cc

        start_time = time.time()
        deserialized: List[Any] = [serialization.load_ciphertext(c) for c in ciphertexts]

        # EvalMult/EvalAdd return new ciphertexts; FLEXIBLEAUTO rescales after each product
        aggregated_result = cc.EvalMult(deserialized[0], normalized_weights[0])
        for ct, weight in zip(deserialized[1:], normalized_weights[1:]):
            aggregated_result = cc.EvalAdd(aggregated_result, cc.EvalMult(ct, weight))

        data = serialization.dump_object(aggregated_result, "aggregated ciphertext")
        duration = time.time() - start_time

        if self.benchmark_manager:
            self.benchmark_manager.log_event('Server', 'CKKS Weighted Aggregation Time', duration, 'seconds')
            self.benchmark_manager.log_event('Server', 'Aggregated Ciphertext Size', len(data), 'bytes')
        logging.getLogger(__name__).info(
            f"Homomorphic aggregation of {len(deserialized)} ciphertexts finished in {duration:.4f}s.")
        return data
