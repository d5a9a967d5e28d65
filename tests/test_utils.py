"""
Tests for seeding, serialization and logging helpers.
"""

import json
import logging

import numpy as np
import pytest

from asec_ml.utils.logging import auto_log_path, get_logger, level_from_verbosity, setup_logger
from asec_ml.utils.random import MAX_SEED, apply_seed_global, get_cv_seed, make_rng
from asec_ml.utils.serialization import load_joblib, save_joblib, save_json, to_builtin


class TestSeeds:
    def test_cv_seed_distinct_per_task(self):
        seeds = {get_cv_seed(42, fold, point) for fold in range(10) for point in range(5)}
        assert len(seeds) == 50

    def test_cv_seed_in_range(self):
        assert 0 <= get_cv_seed(MAX_SEED, 3, 2) <= MAX_SEED

    def test_make_rng_isolated(self):
        np.random.seed(0)
        before = np.random.get_state()[1].copy()
        make_rng(5).uniform(size=10)
        np.testing.assert_array_equal(np.random.get_state()[1], before)

    def test_apply_seed_global(self, monkeypatch):
        monkeypatch.setenv("SEED_GLOBAL", "123")
        assert apply_seed_global() == 123

    @pytest.mark.parametrize("value", ["", "abc", "-1"])
    def test_apply_seed_global_ignored(self, monkeypatch, value):
        monkeypatch.setenv("SEED_GLOBAL", value)
        assert apply_seed_global() is None


class TestSerialization:
    def test_to_builtin(self):
        out = to_builtin({1: np.int64(3), "a": np.array([1.5, np.nan]), "b": (np.float32(2),)})
        assert out == {"1": 3, "a": [1.5, None], "b": [2.0]}

    def test_json(self, tmp_path):
        path = tmp_path / "nested" / "x.json"
        save_json({"score": np.float64(0.5)}, path)
        with open(path) as f:
            assert json.load(f) == {"score": 0.5}

    def test_joblib_plain_object(self, tmp_path):
        save_joblib([1, 2, 3], tmp_path / "x.joblib")
        assert load_joblib(tmp_path / "x.joblib") == [1, 2, 3]


class TestLogging:
    def test_verbosity(self):
        assert level_from_verbosity(0) == logging.INFO
        assert level_from_verbosity(2) == logging.DEBUG

    def test_get_logger_namespace(self):
        assert get_logger("foo").name == "asec_ml.foo"
        assert get_logger("asec_ml.data").name == "asec_ml.data"

    def test_setup_logger_file(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logger("asec_ml", log_file=log_file)
        logging.getLogger("asec_ml.models").info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in log_file.read_text()

    def test_setup_logger_idempotent(self):
        setup_logger("asec_ml")
        logger = setup_logger("asec_ml")
        assert len(logger.handlers) == 1

    def test_auto_log_path(self, tmp_path):
        path = auto_log_path("train", tmp_path / "results", "r1")
        assert path == tmp_path.resolve() / "logs" / "train" / "run_r1.log"
