"""
Learner payloads and encrypted model containers.

A CKKS ciphertext holds at most `batch_size` values, so a model tensor is
flattened and split into fixed-size chunks, each encrypted separately. The
containers here keep the bookkeeping (shape, true length) needed to put the
tensor back together after decryption.
"""

from typing import Any, Dict, List, Tuple, Union
from dataclasses import dataclass, field
import logging

import numpy as np

from ..exceptions import InvalidInputError
from .types import Model


@dataclass(frozen=True)
class EncryptedTensor:
    """
    One model tensor as a list of ciphertext chunks.

    Attributes:
        shape: Original tensor shape
        length: Number of values in the flattened tensor
        chunks: Ciphertexts; all but the last hold `batch_size` values
    """
    shape: Tuple[int, ...]
    length: int
    chunks: Tuple[bytes, ...]

    def chunk_lengths(self, batch_size: int) -> List[int]:
        return [min(batch_size, self.length - start) for start in range(0, self.length, batch_size)]


@dataclass
class EncryptedModel:
    """Tensor name -> EncryptedTensor."""
    tensors: Dict[str, EncryptedTensor] = field(default_factory=dict)

    def signature(self) -> Dict[str, Tuple[Tuple[int, ...], int, int]]:
        return {name: (t.shape, t.length, len(t.chunks)) for name, t in self.tensors.items()}

    def __repr__(self):
        num_chunks = sum(len(t.chunks) for t in self.tensors.values())
        return f"EncryptedModel(tensors={len(self.tensors)}, ciphertexts={num_chunks})"


@dataclass
class ClientPayload:
    """
    What a learner reports for one round.

    Attributes:
        client_id: Identifier of the sending learner
        model: Plaintext Model or EncryptedModel
        weight: Contribution weight (e.g. local dataset size)
        metadata: Free-form extras (e.g. local loss)
    """
    client_id: str
    model: Union[Model, EncryptedModel]
    weight: float = 1.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_encrypted(self) -> bool:
        return isinstance(self.model, EncryptedModel)

    def __repr__(self):
        encrypted_str = "encrypted" if self.is_encrypted else "plaintext"
        return f"ClientPayload(client='{self.client_id}', weight={self.weight}, {encrypted_str})"


def extract_contributions(payloads: List[ClientPayload]) -> List[Tuple[Any, float]]:
    """Turn learner payloads into the (model, weight) pairs aggregators consume."""
    contributions = []
    for payload in payloads:
        if payload.model is None:
            raise InvalidInputError(f"Payload from {payload.client_id} is missing its model.")
        contributions.append((payload.model, payload.weight))
    return contributions


def encrypt_model(fhe_manager: Any, model: Model) -> EncryptedModel:
    """Flatten every tensor, split it into `slot_count` chunks and encrypt each chunk."""
    chunk_size = fhe_manager.slot_count
    tensors = {}
    for name, values in model.items():
        array = np.asarray(values, dtype=np.float64)
        flat = array.ravel()
        chunks = tuple(fhe_manager.encrypt(flat[start:start + chunk_size])
                       for start in range(0, flat.size, chunk_size))
        tensors[name] = EncryptedTensor(shape=tuple(array.shape), length=int(flat.size), chunks=chunks)

    logging.getLogger(__name__).debug(
        f"Encrypted model with {len(tensors)} tensors into "
        f"{sum(len(t.chunks) for t in tensors.values())} ciphertexts")
    return EncryptedModel(tensors=tensors)


def decrypt_model(fhe_manager: Any, encrypted_model: EncryptedModel) -> Model:
    """Decrypt every chunk with its true length and restore the tensor shapes."""
    chunk_size = fhe_manager.slot_count
    model: Model = {}
    for name, tensor in encrypted_model.tensors.items():
        lengths = tensor.chunk_lengths(chunk_size)
        if len(lengths) != len(tensor.chunks):
            raise InvalidInputError(
                f"Tensor '{name}' has {len(tensor.chunks)} ciphertexts but its length "
                f"{tensor.length} needs {len(lengths)} at batch size {chunk_size}.")
        parts = [fhe_manager.decrypt(chunk, length) for chunk, length in zip(tensor.chunks, lengths)]
        flat = np.concatenate(parts) if parts else np.zeros(0, dtype=np.float64)
        model[name] = flat.reshape(tensor.shape)
    return model
