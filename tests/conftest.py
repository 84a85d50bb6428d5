import numpy as np
import pytest


@pytest.fixture(scope="session")
def ckks_dir(tmp_path_factory):
    """Directory holding the artifacts of the shared CKKS instance."""
    return tmp_path_factory.mktemp("crypto")


@pytest.fixture(scope="session")
def ckks(ckks_dir):
    """CKKS instance with freshly generated context and keys (batch 8192, 40 bits)."""
    pytest.importorskip("openfhe")
    from fedhe.fhe import CKKS

    instance = CKKS(batch_size=8192, scaling_factor_bits=40)
    instance.gen_crypto_context_and_keys(str(ckks_dir))
    return instance


@pytest.fixture(scope="session")
def small_ckks(tmp_path_factory):
    """CKKS instance with only 8 slots, for capacity and chunking tests."""
    pytest.importorskip("openfhe")
    from fedhe.fhe import CKKS

    instance = CKKS(batch_size=8, scaling_factor_bits=40)
    instance.gen_crypto_context_and_keys(str(tmp_path_factory.mktemp("crypto_small")))
    return instance


@pytest.fixture
def rng():
    return np.random.default_rng(seed=1234)


@pytest.fixture
def learner_models():
    """Three learners with two tensors each."""
    return [
        {"dense.weight": np.array([[1.0, 2.0], [3.0, 4.0]]), "dense.bias": np.array([0.5, -0.5])},
        {"dense.weight": np.array([[2.0, 3.0], [4.0, 5.0]]), "dense.bias": np.array([1.5, -1.5])},
        {"dense.weight": np.array([[0.0, 1.0], [2.0, 3.0]]), "dense.bias": np.array([0.0, 0.0])},
    ]
