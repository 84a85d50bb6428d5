import numpy as np
import pytest

from fedhe import FederatedServer
from fedhe.aggregators import PlaintextFedAvg, aggregator_registry, get_aggregator
from fedhe.core.benchmark_manager import BenchmarkManager
from fedhe.core.payload import ClientPayload
from fedhe.exceptions import InvalidInputError


def test_registry_selects_plaintext_strategy():
    aggregator = get_aggregator("plaintext_fedavg")

    assert isinstance(aggregator, PlaintextFedAvg)
    assert "plaintext_fedavg" in aggregator_registry


def test_unknown_strategy_rejected():
    with pytest.raises(InvalidInputError, match="Unknown or unavailable aggregator"):
        get_aggregator("trimmed_mean")


def test_plaintext_server_uses_auto_strategy():
    server = FederatedServer(use_fhe=False)

    assert server.aggregator.name == "plaintext_fedavg"
    assert server.get_crypto_params_files() is None


def test_encrypted_server_requires_fhe_manager():
    with pytest.raises(InvalidInputError):
        FederatedServer(use_fhe=True)


def test_rounds_are_numbered(learner_models):
    server = FederatedServer(use_fhe=False)
    pairs = [(m, 1.0) for m in learner_models]

    first = server.aggregate_round(pairs)
    second = server.aggregate_round(pairs)

    assert first.global_iteration == 1
    assert second.global_iteration == 2


def test_client_payloads_accepted(learner_models):
    server = FederatedServer(use_fhe=False)
    payloads = [ClientPayload(client_id=f"learner_{i}", model=m, weight=w)
                for i, (m, w) in enumerate(zip(learner_models, [0.5, 0.3, 0.2]))]

    result = server.aggregate_round(payloads)

    np.testing.assert_allclose(result.model["dense.weight"], [[1.1, 2.1], [3.1, 4.1]])


def test_malformed_round_does_not_break_server(learner_models):
    server = FederatedServer(use_fhe=False)

    with pytest.raises(InvalidInputError):
        server.aggregate_round([(learner_models[0], 1.0), (learner_models[1], "heavy")])

    result = server.aggregate_round([(m, 1.0) for m in learner_models])
    assert result.global_iteration == 1
    assert result.num_contributors == 3


def test_round_time_benchmarked(learner_models):
    manager = BenchmarkManager()
    server = FederatedServer(use_fhe=False, benchmark_manager=manager)

    server.aggregate_round([(m, 1.0) for m in learner_models])

    df = manager.get_benchmark_data()
    assert set(df['metric']) == {'Plaintext Aggregation Time', 'Round Aggregation Time'}
    assert set(df['round']) == {1}
