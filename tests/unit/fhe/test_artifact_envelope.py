import json
import struct

import pytest

pytest.importorskip("openfhe")

from fedhe.exceptions import CryptoFileError
from fedhe.fhe.serialization import (
    MAGIC,
    PUBLIC_KEY,
    CONTEXT,
    new_instance_id,
    pack_artifact,
    read_artifact,
    unpack_artifact,
    write_artifact,
)

INSTANCE = "a" * 32


def test_pack_and_unpack():
    blob = pack_artifact(CONTEXT, b"opaque-openfhe-bytes", 8192, 40, INSTANCE)

    assert blob.startswith(MAGIC)
    assert unpack_artifact(blob, CONTEXT, 8192, 40) == (INSTANCE, b"opaque-openfhe-bytes")
    assert unpack_artifact(blob, CONTEXT, 8192, 40, INSTANCE) == (INSTANCE, b"opaque-openfhe-bytes")


def test_instance_ids_are_unique():
    assert new_instance_id() != new_instance_id()


@pytest.mark.parametrize("kind,batch_size,bits,field", [
    (PUBLIC_KEY, 8192, 40, "kind"),
    (CONTEXT, 4096, 40, "batch_size"),
    (CONTEXT, 8192, 50, "scaling_factor_bits"),
])
def test_configuration_mismatch_rejected(kind, batch_size, bits, field):
    blob = pack_artifact(CONTEXT, b"payload", 8192, 40, INSTANCE)

    with pytest.raises(CryptoFileError, match="incompatible") as exc_info:
        unpack_artifact(blob, kind, batch_size, bits)

    assert field in exc_info.value.details["mismatched"]


def test_other_key_generation_rejected():
    blob = pack_artifact(PUBLIC_KEY, b"payload", 8192, 40, INSTANCE)

    with pytest.raises(CryptoFileError, match="different key generation") as exc_info:
        unpack_artifact(blob, PUBLIC_KEY, 8192, 40, "b" * 32)

    assert exc_info.value.details["instance_id"] == INSTANCE


def test_foreign_file_rejected():
    with pytest.raises(CryptoFileError, match="not a fedhe crypto artifact"):
        unpack_artifact(b"\x00\x01 raw openfhe output", CONTEXT, 8192, 40)


def test_truncated_artifact_rejected():
    blob = pack_artifact(CONTEXT, b"", 8192, 40, INSTANCE)

    with pytest.raises(CryptoFileError, match="empty payload"):
        unpack_artifact(blob, CONTEXT, 8192, 40)


def test_corrupt_header_rejected():
    blob = bytearray(pack_artifact(CONTEXT, b"payload", 8192, 40, INSTANCE))
    blob[len(MAGIC) + 4] = 0xFF

    with pytest.raises(CryptoFileError, match="corrupt"):
        unpack_artifact(bytes(blob), CONTEXT, 8192, 40)


@pytest.mark.parametrize("header", [[], "ckks", 42, {"scheme": "ckks", "kind": "context"}])
def test_header_without_fields_rejected(header):
    encoded = json.dumps(header).encode("utf-8")
    blob = MAGIC + struct.pack(">I", len(encoded)) + encoded + b"payload"

    with pytest.raises(CryptoFileError, match="corrupt"):
        unpack_artifact(blob, CONTEXT, 8192, 40)


def test_write_then_read_file(tmp_path):
    path = str(tmp_path / "cryptocontext.txt")

    write_artifact(path, CONTEXT, b"payload", 8192, 40, INSTANCE)

    assert read_artifact(path, CONTEXT, 8192, 40) == (INSTANCE, b"payload")


def test_missing_file(tmp_path):
    path = str(tmp_path / "nope.txt")

    with pytest.raises(CryptoFileError, match="not found") as exc_info:
        read_artifact(path, CONTEXT, 8192, 40)

    assert isinstance(exc_info.value, OSError)
    assert exc_info.value.details == {"path": path}
