import os

import pandas as pd
import pytest

from automl_engine.automl.execution.data import DatasetCache, load_dataset


def _write(path, values, mtime):
    pd.DataFrame({"x1": values}).to_csv(path, index=False)
    os.utime(path, (mtime, mtime))


def test_unchanged_file_is_served_from_the_cache(tmp_path):
    path = tmp_path / "data.csv"
    _write(path, [1, 2], mtime=1_700_000_000)
    cache = DatasetCache()

    assert cache.load(str(path)) is cache.load(str(path))


def test_rewritten_file_is_loaded_again(tmp_path):
    path = tmp_path / "data.csv"
    _write(path, [1, 2], mtime=1_700_000_000)
    cache = DatasetCache()
    first = cache.load(str(path))

    _write(path, [5, 6, 7], mtime=1_700_000_100)
    second = cache.load(str(path))

    assert first["x1"].tolist() == [1, 2]
    assert second["x1"].tolist() == [5, 6, 7]
    assert len(cache) == 1


def test_least_recently_used_frame_is_evicted(tmp_path):
    paths = [tmp_path / f"data-{index}.csv" for index in range(3)]
    for path in paths:
        _write(path, [1, 2], mtime=1_700_000_000)
    cache = DatasetCache(max_entries=2)

    first = cache.load(str(paths[0]))
    cache.load(str(paths[1]))
    assert cache.load(str(paths[0])) is first
    cache.load(str(paths[2]))

    assert len(cache) == 2
    assert cache.load(str(paths[0])) is first
    reloaded = cache.load(str(paths[1]))
    assert reloaded["x1"].tolist() == [1, 2]
    assert len(cache) == 2


def test_missing_file_is_not_cached(tmp_path):
    cache = DatasetCache()
    with pytest.raises(FileNotFoundError):
        cache.load(str(tmp_path / "absent.csv"))
    assert len(cache) == 0


def test_json_datasets_are_supported(tmp_path):
    path = tmp_path / "data.json"
    pd.DataFrame({"x1": [1.0, 2.0], "target": [0, 1]}).to_json(path)

    frame = load_dataset(str(path))

    assert frame["x1"].tolist() == [1.0, 2.0]


def test_unknown_extension_is_rejected(tmp_path):
    path = tmp_path / "data.xlsx"
    path.write_bytes(b"")
    with pytest.raises(ValueError):
        load_dataset(str(path))
