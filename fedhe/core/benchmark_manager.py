import logging
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

import pandas as pd


class BenchmarkProfile(Enum):
    """Available benchmark profiles for different measurement focuses"""
    FHE_COMPUTATION = auto()  # context setup, encryption, decryption times
    FHE_BANDWIDTH = auto()    # ciphertext and key sizes
    AGGREGATION = auto()      # plaintext and homomorphic aggregation times
    ALL = auto()              # enable all metrics


class BenchmarkManager:
    """Collects timestamped metric events and exports them as a DataFrame/CSV.

    Events are filtered by the active profiles; a manager created without
    profiles records everything.
    """

    def __init__(self, profiles: Optional[List[BenchmarkProfile]] = None):
        self.logs: List[Dict] = []
        self.current_round: int = 0
        self.active_profiles: Set[BenchmarkProfile] = (
            {BenchmarkProfile.ALL} if profiles is None else set(profiles)
        )
        self.logger = logging.getLogger(__name__)

        self.profile_metrics: Dict[BenchmarkProfile, Set[str]] = {
            BenchmarkProfile.FHE_COMPUTATION: {
                'Setup Time', 'Encryption Time', 'Decryption Time',
                'Context Load Time'
            },
            BenchmarkProfile.FHE_BANDWIDTH: {
                'Ciphertext Size', 'Aggregated Ciphertext Size'
            },
            BenchmarkProfile.AGGREGATION: {
                'Plaintext Aggregation Time', 'CKKS Weighted Aggregation Time',
                'Round Aggregation Time'
            },
        }

        self.logger.info(
            f"BenchmarkManager initialized with profiles: {[p.name for p in self.active_profiles]}"
        )

    def set_round(self, round_num: int):
        self.current_round = int(round_num)

    def should_log_metric(self, metric_name: str) -> bool:
        if BenchmarkProfile.ALL in self.active_profiles:
            return True
        return any(metric_name in self.profile_metrics.get(profile, set())
                   for profile in self.active_profiles)

    def log_event(self, component_id: str, metric_name: str, value: float, unit: str = '',
                  tags: Dict[str, str] = None):
        """Record a timestamped metric event (if enabled by profile)."""
        if not self.should_log_metric(metric_name):
            return

        entry = {
            'timestamp': datetime.now(),
            'round': self.current_round,
            'component_id': component_id,
            'metric': metric_name,
            'value': float(value),
            'unit': unit or ''
        }
        if tags:
            entry.update(tags)

        self.logs.append(entry)

    def get_benchmark_data(self, filter_profile: Optional[BenchmarkProfile] = None) -> pd.DataFrame:
        if not self.logs:
            return pd.DataFrame()
        df = pd.DataFrame(self.logs)
        if filter_profile and filter_profile != BenchmarkProfile.ALL:
            metrics = self.profile_metrics.get(filter_profile, set())
            df = df[df['metric'].isin(metrics)]
        return df

    def export_to_csv(self, filepath: Union[str, Path], filter_profile: Optional[BenchmarkProfile] = None):
        path = Path(filepath)
        df = self.get_benchmark_data(filter_profile)
        if df.empty:
            self.logger.warning("No benchmark data to export")
            return
        df.to_csv(path, index=False)
        self.logger.info(f"Exported benchmark data to {path}")
