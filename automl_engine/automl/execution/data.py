"""Dataset loading helpers shared by the profiler and the trial runner."""

from __future__ import annotations

import os
import threading
from collections import OrderedDict
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from ..schemas import DatasetDescriptor


def load_dataset(source_path: str) -> pd.DataFrame:
    if not os.path.exists(source_path):
        raise FileNotFoundError(f"File not found: {source_path}")

    lowered = source_path.lower()
    if lowered.endswith(".csv"):
        return pd.read_csv(source_path)
    if lowered.endswith(".parquet"):
        return pd.read_parquet(source_path)
    if lowered.endswith(".json"):
        return pd.read_json(source_path)
    raise ValueError(f"Unsupported file format: {source_path}")


def feature_columns(
    frame: pd.DataFrame,
    dataset: DatasetDescriptor,
    features: Optional[Sequence[str]] = None,
) -> List[str]:
    """Columns to train on: explicit features, then the descriptor's list, then all but the target."""

    requested = list(features or dataset.feature_columns)
    if requested:
        missing = [column for column in requested if column not in frame.columns]
        if missing:
            raise KeyError(f"Dataset '{dataset.name}' has no column(s): {', '.join(missing)}")
        return requested
    return [column for column in frame.columns if column != dataset.target_column]


def split_features(
    frame: pd.DataFrame,
    dataset: DatasetDescriptor,
    features: Optional[Sequence[str]] = None,
) -> Tuple[pd.DataFrame, Optional[pd.Series]]:
    target: Optional[pd.Series] = None
    if dataset.target_column:
        if dataset.target_column not in frame.columns:
            raise KeyError(f"Target column '{dataset.target_column}' not found in dataset '{dataset.name}'")
        target = frame[dataset.target_column]

    columns = [column for column in feature_columns(frame, dataset, features) if column != dataset.target_column]
    if not columns:
        raise ValueError(f"Dataset '{dataset.name}' has no feature columns")
    return frame[columns], target


class DatasetCache:
    """Keeps recently loaded frames so repeated trials do not re-read the file.

    Entries are keyed by path and modification time, so a rewritten file is
    loaded again. At most ``max_entries`` frames are kept, least recently used
    first out.
    """

    def __init__(self, max_entries: int = 4) -> None:
        self.max_entries = max(1, int(max_entries))
        self._lock = threading.Lock()
        self._frames: OrderedDict[str, Tuple[float, pd.DataFrame]] = OrderedDict()

    def load(self, source_path: str) -> pd.DataFrame:
        try:
            modified = os.stat(source_path).st_mtime
        except OSError:
            return load_dataset(source_path)

        with self._lock:
            entry = self._frames.get(source_path)
            if entry is not None and entry[0] == modified:
                self._frames.move_to_end(source_path)
                return entry[1]

        frame = load_dataset(source_path)
        with self._lock:
            self._frames[source_path] = (modified, frame)
            self._frames.move_to_end(source_path)
            while len(self._frames) > self.max_entries:
                self._frames.popitem(last=False)
        return frame

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)


__all__ = ["DatasetCache", "feature_columns", "load_dataset", "split_features"]
