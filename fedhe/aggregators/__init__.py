import logging

from ..exceptions import InvalidInputError
from .base_aggregator import BaseAggregator
from .plaintext_fedavg import PlaintextFedAvg

# FHE aggregators are only available if OpenFHE is installed
FHE_AVAILABLE = True
try:
    from .secure_ckks_fedavg import SecureCkksFedAvg
except ImportError as e:
    logging.getLogger(__name__).warning(
        f"FHE aggregators not available, OpenFHE is not properly installed ({e}). "
        "Only plaintext aggregation will be available.")
    SecureCkksFedAvg = None
    FHE_AVAILABLE = False

# The Aggregator Registry
# Maps a user-friendly string name to the aggregator class.
aggregator_registry = {
    "plaintext_fedavg": PlaintextFedAvg,
}

if FHE_AVAILABLE:
    aggregator_registry.update({
        "ckks_fedavg": SecureCkksFedAvg,
    })


def get_aggregator(name: str, **kwargs) -> BaseAggregator:
    """Explicit strategy selector: instantiate the aggregator registered under `name`."""
    aggregator_class = aggregator_registry.get(name)
    if aggregator_class is None:
        raise InvalidInputError(
            f"Unknown or unavailable aggregator: '{name}'. Available: {sorted(aggregator_registry)}")
    return aggregator_class(**kwargs)
