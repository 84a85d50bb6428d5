"""
Shared data types for federated aggregation.

A Model maps tensor names to numpy arrays. The crypto layer never looks at
names or shapes: it only sees flat float64 vectors, so shape bookkeeping
lives here and in the payload helpers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Tuple

import numpy as np

Model = Dict[str, np.ndarray]


@dataclass(frozen=True)
class CryptoParams:
    """
    Locations of the four artifacts of one CKKS instantiation.

    Attributes:
        crypto_context_file: Serialized crypto context
        public_key_file: Serialized public key
        private_key_file: Serialized private (secret) key
        eval_mult_key_file: Serialized evaluation-multiplication key
    """
    crypto_context_file: str
    public_key_file: str
    private_key_file: str
    eval_mult_key_file: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "crypto_context_file": self.crypto_context_file,
            "public_key_file": self.public_key_file,
            "private_key_file": self.private_key_file,
            "eval_mult_key_file": self.eval_mult_key_file,
        }


@dataclass
class FederatedModel:
    """
    The model produced by one aggregation round.

    Attributes:
        model: Aggregated model (a Model, or an EncryptedModel when the
            aggregation ran over ciphertexts)
        num_contributors: Number of learner models that were combined
        aggregation_strategy: Name of the strategy that produced the model
        encrypted: Whether `model` holds ciphertexts
        global_iteration: Round number assigned by the server (0 if unset)
        created_at: Creation timestamp
    """
    model: Any
    num_contributors: int
    aggregation_strategy: str
    encrypted: bool = False
    global_iteration: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    def __repr__(self):
        mode = "encrypted" if self.encrypted else "plaintext"
        return (f"FederatedModel(strategy='{self.aggregation_strategy}', "
                f"contributors={self.num_contributors}, iteration={self.global_iteration}, {mode})")


def model_signature(model: Model) -> Dict[str, Tuple[int, ...]]:
    """Tensor name -> shape, used to check that contributions line up."""
    return {name: tuple(np.shape(values)) for name, values in model.items()}
