"""
Byte-level (de)serialization of OpenFHE CKKS objects.

Objects go through OpenFHE's file API (``SerializeToFile`` and the
``Deserialize*`` readers), which covers contexts, keys, ciphertexts and the
evaluation-multiplication key alike. Each call writes into its own temporary
directory, which is removed before the call returns, so serialized material
(private key included) only touches disk for the duration of one call.

Persisted artifacts (context, public key, private key, evaluation key) are
wrapped in a small envelope:

    MAGIC | 4-byte big-endian header length | JSON header | OpenFHE payload

The header records the scheme, artifact kind, batch size, scaling factor bits
and the id of the key generation that produced the artifact. Artifacts from a
different configuration or a different generation are rejected before the
payload ever reaches OpenFHE. Ciphertexts are left as raw OpenFHE payloads.
"""

import json
import os
import struct
import tempfile
import uuid
from typing import Any, Callable, Dict, Optional, Tuple, Type

from openfhe import *

from ..exceptions import CryptoFileError, FedHEError, InvalidInputError

MAGIC = b"FEDHE\x01"
_HEADER_LENGTH = struct.Struct(">I")

CONTEXT = "context"
PUBLIC_KEY = "public_key"
PRIVATE_KEY = "private_key"
EVAL_MULT_KEY = "eval_mult_key"
ARTIFACT_KINDS = (CONTEXT, PUBLIC_KEY, PRIVATE_KEY, EVAL_MULT_KEY)


def _write_through_file(writer: Callable[[str], bool], what: str) -> bytes:
    with tempfile.TemporaryDirectory(prefix="fedhe-") as tmp_dir:
        path = os.path.join(tmp_dir, "object.bin")
        if not writer(path):
            raise RuntimeError(f"OpenFHE failed to serialize {what}.")
        with open(path, "rb") as f:
            return f.read()


def _read_through_file(payload: bytes, reader: Callable[[str], Any], what: str,
                       error_cls: Type[FedHEError]) -> Any:
    with tempfile.TemporaryDirectory(prefix="fedhe-") as tmp_dir:
        path = os.path.join(tmp_dir, "object.bin")
        with open(path, "wb") as f:
            f.write(payload)
        try:
            result = reader(path)
        except RuntimeError as e:
            raise error_cls(f"Could not deserialize {what}: {e}") from e

    # Deserialize* functions return (object, ok); DeserializeEvalMultKey returns ok
    if isinstance(result, tuple):
        obj, ok = result
    else:
        obj, ok = None, result
    if not ok:
        raise error_cls(f"Could not deserialize {what}.")
    return obj


def dump_object(obj: Any, what: str = "object") -> bytes:
    """Serialize a context, key or ciphertext to bytes."""
    return _write_through_file(lambda path: SerializeToFile(path, obj, BINARY), what)


def dump_eval_mult_keys(cc: Any) -> bytes:
    return _write_through_file(lambda path: cc.SerializeEvalMultKey(path, BINARY),
                               "evaluation-multiplication key")


def load_crypto_context(payload: bytes) -> Any:
    return _read_through_file(payload, lambda path: DeserializeCryptoContext(path, BINARY),
                              "crypto context", CryptoFileError)


def load_public_key(payload: bytes) -> Any:
    return _read_through_file(payload, lambda path: DeserializePublicKey(path, BINARY),
                              "public key", CryptoFileError)


def load_private_key(payload: bytes) -> Any:
    return _read_through_file(payload, lambda path: DeserializePrivateKey(path, BINARY),
                              "private key", CryptoFileError)


def load_eval_mult_keys(cc: Any, payload: bytes) -> None:
    """Registers the evaluation-multiplication key with the given context."""
    _read_through_file(payload, lambda path: cc.DeserializeEvalMultKey(path, BINARY),
                       "evaluation-multiplication key", CryptoFileError)


def load_ciphertext(payload: bytes) -> Any:
    if not isinstance(payload, (bytes, bytearray)) or not payload:
        raise InvalidInputError("Ciphertext must be a non-empty bytes object.")
    return _read_through_file(bytes(payload), lambda path: DeserializeCiphertext(path, BINARY),
                              "ciphertext", InvalidInputError)


# ---- artifact envelope ------------------------------------------------------

def new_instance_id() -> str:
    """Random id shared by the four artifacts of one key generation."""
    return uuid.uuid4().hex


def pack_artifact(kind: str, payload: bytes, batch_size: int, scaling_factor_bits: int,
                  instance_id: str) -> bytes:
    if kind not in ARTIFACT_KINDS:
        raise ValueError(f"Unknown artifact kind: '{kind}'.")
    header = json.dumps({
        "scheme": "ckks",
        "kind": kind,
        "batch_size": int(batch_size),
        "scaling_factor_bits": int(scaling_factor_bits),
        "instance_id": instance_id,
    }, sort_keys=True).encode("utf-8")
    return MAGIC + _HEADER_LENGTH.pack(len(header)) + header + payload


def unpack_artifact(blob: bytes, kind: str, batch_size: int, scaling_factor_bits: int,
                    instance_id: Optional[str] = None, source: str = "<bytes>") -> Tuple[str, bytes]:
    """
    Validate an artifact envelope and return ``(instance_id, payload)``.

    The header must match the expected configuration and kind. When
    `instance_id` is given, the artifact must also come from that key
    generation.
    """
    prefix_len = len(MAGIC) + _HEADER_LENGTH.size
    if len(blob) < prefix_len or not blob.startswith(MAGIC):
        raise CryptoFileError(f"{source} is not a fedhe crypto artifact.", {"path": source})

    (header_len,) = _HEADER_LENGTH.unpack_from(blob, len(MAGIC))
    header_end = prefix_len + header_len
    try:
        header: Dict[str, Any] = json.loads(blob[prefix_len:header_end].decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CryptoFileError(f"{source} has a corrupt artifact header.", {"path": source}) from e
    if not isinstance(header, dict) or not isinstance(header.get("instance_id"), str):
        raise CryptoFileError(f"{source} has a corrupt artifact header.", {"path": source})

    expected = {
        "scheme": "ckks",
        "kind": kind,
        "batch_size": int(batch_size),
        "scaling_factor_bits": int(scaling_factor_bits),
    }
    mismatched = {k: (header.get(k), v) for k, v in expected.items() if header.get(k) != v}
    if mismatched:
        details = ", ".join(f"{k}: found {found!r}, expected {want!r}"
                            for k, (found, want) in mismatched.items())
        raise CryptoFileError(f"{source} is incompatible with this CKKS configuration ({details}).",
                              {"path": source, "mismatched": mismatched})

    if instance_id is not None and header["instance_id"] != instance_id:
        raise CryptoFileError(
            f"{source} belongs to a different key generation than the material already loaded.",
            {"path": source, "instance_id": header["instance_id"], "expected_instance_id": instance_id})

    payload = blob[header_end:]
    if not payload:
        raise CryptoFileError(f"{source} has an empty payload.", {"path": source})
    return header["instance_id"], payload


def write_artifact(path: str, kind: str, payload: bytes, batch_size: int, scaling_factor_bits: int,
                   instance_id: str) -> None:
    with open(path, "wb") as f:
        f.write(pack_artifact(kind, payload, batch_size, scaling_factor_bits, instance_id))


def read_artifact(path: str, kind: str, batch_size: int, scaling_factor_bits: int,
                  instance_id: Optional[str] = None) -> Tuple[str, bytes]:
    try:
        with open(path, "rb") as f:
            blob = f.read()
    except FileNotFoundError as e:
        raise CryptoFileError(f"Crypto file not found: {path}", {"path": path}) from e
    except OSError as e:
        raise CryptoFileError(f"Crypto file could not be read: {path} ({e})", {"path": path}) from e
    return unpack_artifact(blob, kind, batch_size, scaling_factor_bits, instance_id, source=path)
