"""Tests for logging configuration and behavior."""

import logging

import pytest

from macropolicy import logging as mp_logging
from macropolicy.logging import DEEP_DEBUG, PolicyLogger, getLogger
from macropolicy.search import PolicySearch

COMPONENTS = ("macropolicy.optimizer", "macropolicy.transition", "macropolicy.search")


@pytest.fixture(autouse=True)
def reset_component_levels():
    yield
    for name in COMPONENTS:
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestPolicyLogger:
    """Test custom PolicyLogger functionality."""

    def test_logger_has_deep_method(self):
        logger = getLogger("macropolicy.test")
        assert isinstance(logger, PolicyLogger)
        assert callable(logger.deep)

    def test_deep_level_exists(self):
        assert DEEP_DEBUG == 5
        assert logging.getLevelName(DEEP_DEBUG) == "DEEP"
        assert mp_logging.LEVELS["DEEP_DEBUG"] == DEEP_DEBUG

    def test_deep_logging_when_enabled(self, caplog):
        logger = getLogger("test.deep")
        logger.setLevel(DEEP_DEBUG)

        with caplog.at_level(DEEP_DEBUG, logger="test.deep"):
            logger.deep("Deep debug message")

        assert "Deep debug message" in caplog.text

    def test_deep_logging_when_disabled(self, caplog):
        logger = getLogger("test.deep_disabled")
        logger.setLevel(logging.INFO)

        with caplog.at_level(logging.INFO, logger="test.deep_disabled"):
            logger.deep("Should not appear")

        assert "Should not appear" not in caplog.text

    def test_module_loggers_are_policy_loggers(self):
        from macropolicy import optimizer, search, transition

        for module in (optimizer, search, transition):
            assert isinstance(module.log, PolicyLogger)


class TestLoggingConfiguration:
    def test_default_level(self):
        mp_logging.configure({"default_level": "WARNING"})
        assert logging.getLogger("macropolicy").level == logging.WARNING

    def test_component_levels(self):
        mp_logging.configure(
            {
                "default_level": "INFO",
                "components": {"optimizer": "DEBUG", "transition": "DEEP_DEBUG"},
            }
        )

        assert logging.getLogger("macropolicy").level == logging.INFO
        assert logging.getLogger("macropolicy.optimizer").level == logging.DEBUG
        assert logging.getLogger("macropolicy.transition").level == DEEP_DEBUG

    def test_level_names_case_insensitive(self):
        mp_logging.configure({"default_level": "debug"})
        assert logging.getLogger("macropolicy").level == logging.DEBUG

    def test_applied_by_policy_search(self):
        PolicySearch.init(
            max_round=1,
            logging={"default_level": "ERROR", "components": {"search": "DEBUG"}},
        )

        assert logging.getLogger("macropolicy").level == logging.ERROR
        assert logging.getLogger("macropolicy.search").level == logging.DEBUG

    def test_component_debug_output(self, caplog):
        search = PolicySearch.init(
            max_round=1,
            rate_step=0.01,
            tax_step=0.01,
            logging={"default_level": "ERROR", "components": {"optimizer": "DEBUG"}},
        )

        # the autouse fixture raised the capture handler to ERROR
        caplog.handler.setLevel(logging.DEBUG)
        search.step()

        messages = [r.getMessage() for r in caplog.records]
        assert any("Searching round 1" in m for m in messages)
        assert any("Round 1 winner" in m for m in messages)


class TestLoggingLayers:
    def test_kwargs_keep_yaml_components(self, tmp_path):
        path = tmp_path / "run.yml"
        path.write_text(
            "logging:\n  default_level: INFO\n  components:\n    optimizer: DEBUG\n"
        )

        PolicySearch.init(
            config=path, max_round=1, logging={"default_level": "ERROR"}
        )

        assert logging.getLogger("macropolicy").level == logging.ERROR
        assert logging.getLogger("macropolicy.optimizer").level == logging.DEBUG

    def test_component_maps_are_merged(self):
        PolicySearch.init(
            config={"logging": {"components": {"optimizer": "DEBUG"}}},
            max_round=1,
            logging={"components": {"search": "WARNING"}},
        )

        assert logging.getLogger("macropolicy.optimizer").level == logging.DEBUG
        assert logging.getLogger("macropolicy.search").level == logging.WARNING

    def test_cli_log_level_keeps_yaml_components(self, tmp_path):
        from macropolicy.cli import main

        path = tmp_path / "run.yml"
        path.write_text(
            "rate_step: 0.01\ntax_step: 0.01\n"
            "logging:\n  components:\n    transition: WARNING\n"
        )

        args = ["--rounds", "1", "--config", str(path), "--log-level", "ERROR"]
        assert main(args) == 0
        assert logging.getLogger("macropolicy").level == logging.ERROR
        assert logging.getLogger("macropolicy.transition").level == logging.WARNING
