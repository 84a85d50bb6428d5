import numpy as np
import pytest

pytest.importorskip("openfhe")

from fedhe import FederatedServer
from fedhe.aggregators import PlaintextFedAvg
from fedhe.core.payload import ClientPayload, EncryptedModel, decrypt_model, encrypt_model
from fedhe.exceptions import InvalidInputError
from fedhe.fhe import CKKS


def test_context_portability(ckks):
    """Artifacts generated by one party let a fresh instance decrypt its ciphertexts."""
    files = ckks.get_crypto_params_files()
    ciphertext = ckks.encrypt([0.25, -1.5, 3.0])

    key_holder = CKKS(batch_size=8192, scaling_factor_bits=40)
    key_holder.load_context_and_keys_from_files(
        files["crypto_context_file"], files["public_key_file"], files["private_key_file"])

    np.testing.assert_allclose(key_holder.decrypt(ciphertext, 3), [0.25, -1.5, 3.0], atol=1e-4)
    np.testing.assert_allclose(ckks.decrypt(key_holder.encrypt([9.0]), 1), [9.0], atol=1e-4)
    assert key_holder.get_crypto_params_files() == files


def test_model_is_split_into_chunks(small_ckks, rng):
    model = {"conv.kernel": rng.normal(size=(4, 5)), "conv.bias": rng.normal(size=3)}

    encrypted = encrypt_model(small_ckks, model)
    restored = decrypt_model(small_ckks, encrypted)

    assert encrypted.signature() == {"conv.kernel": ((4, 5), 20, 3), "conv.bias": ((3,), 3, 1)}
    assert encrypted.tensors["conv.kernel"].chunk_lengths(8) == [8, 8, 4]
    for name, values in model.items():
        assert restored[name].shape == values.shape
        np.testing.assert_allclose(restored[name], values, atol=1e-4)


def test_encrypted_round_matches_plaintext(small_ckks, rng):
    models = [{"w": rng.normal(size=(3, 4)), "b": rng.normal(size=2)} for _ in range(3)]
    weights = [120, 45, 300]
    server = FederatedServer(use_fhe=True, fhe_manager=small_ckks)

    payloads = [ClientPayload(client_id=f"learner_{i}", model=encrypt_model(small_ckks, m), weight=w)
                for i, (m, w) in enumerate(zip(models, weights))]
    result = server.aggregate_round(payloads)

    assert server.aggregator.name == "ckks_fedavg"
    assert result.encrypted
    assert result.global_iteration == 1
    assert isinstance(result.model, EncryptedModel)

    expected = PlaintextFedAvg().aggregate(list(zip(models, weights))).model
    decrypted = decrypt_model(small_ckks, result.model)
    for name in expected:
        np.testing.assert_allclose(decrypted[name], expected[name], atol=1e-4)


def test_encrypted_round_rejects_incompatible_models(small_ckks):
    server = FederatedServer(use_fhe=True, fhe_manager=small_ckks)
    a = encrypt_model(small_ckks, {"w": np.ones(4)})
    b = encrypt_model(small_ckks, {"w": np.ones(10)})

    with pytest.raises(InvalidInputError):
        server.aggregate_round([(a, 1.0), (b, 1.0)])
    with pytest.raises(InvalidInputError):
        server.aggregate_round([({"w": np.ones(4)}, 1.0), (a, 1.0)])
    assert server.global_iteration == 0


def test_plaintext_strategy_refused_in_encrypted_mode(small_ckks):
    with pytest.raises(InvalidInputError):
        FederatedServer(use_fhe=True, aggregator_name="plaintext_fedavg", fhe_manager=small_ckks)


def test_server_exposes_artifacts(ckks):
    server = FederatedServer(use_fhe=True, fhe_manager=ckks)

    assert server.get_crypto_params_files() == ckks.get_crypto_params_files()
