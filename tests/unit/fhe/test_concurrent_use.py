from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

pytest.importorskip("openfhe")

from fedhe.core.protocol_state import CryptoContextState
from fedhe.fhe import CKKS


def test_concurrent_encrypt_aggregate_decrypt(ckks):
    baseline = ckks.encrypt([10.0, 20.0, 30.0])

    def round_trip(i):
        values = [float(i), float(i) + 1.0, float(i) + 2.0]
        ct = ckks.encrypt(values)
        averaged = ckks.compute_weighted_average([ct, baseline], [1, 1])
        return i, ckks.decrypt(ct, 3), ckks.decrypt(averaged, 3)

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(round_trip, range(12)))

    assert len(results) == 12
    for i, decrypted, averaged in results:
        np.testing.assert_allclose(decrypted, [i, i + 1, i + 2], atol=1e-4)
        np.testing.assert_allclose(averaged, [(i + 10) / 2, (i + 21) / 2, (i + 32) / 2], atol=1e-4)


def test_concurrent_loads_establish_material_once(ckks):
    files = ckks.get_crypto_params_files()
    party = CKKS(batch_size=8192, scaling_factor_bits=40)

    def load(_):
        party.load_context_and_keys_from_files(files["crypto_context_file"], files["public_key_file"],
                                               files["private_key_file"], files["eval_mult_key_file"])

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(load, range(8)))

    assert party.context.state == CryptoContextState.OPERATIONAL_READY
    targets = [t.to_state for t in party.context.state_machine.get_transition_history()]
    assert len(targets) == len(set(targets))
    np.testing.assert_allclose(party.decrypt(ckks.encrypt([1.5]), 1), [1.5], atol=1e-4)
