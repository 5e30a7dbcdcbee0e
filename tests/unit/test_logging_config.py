import logging

import pytest

from real_options.utils.logging_config import coerce_level, setup_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.parametrize(
    "level, expected",
    [
        ("info", logging.INFO),
        (" Warn ", logging.WARNING),
        ("10", 10),
        (logging.ERROR, logging.ERROR),
    ],
)
def test_coerce_level(level, expected):
    assert coerce_level(level) == expected


@pytest.mark.parametrize("level", ["", "verbose"])
def test_coerce_level_rejects_unknown(level):
    with pytest.raises(ValueError):
        coerce_level(level)


def test_setup_logging_writes_file_and_module_levels(tmp_path, restore_root_logging):
    log_file = tmp_path / "logs" / "valuation.log"
    setup_logging("INFO", log_file=log_file, module_levels={"real_options.core.lattice": "DEBUG"})

    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("real_options.core.lattice").level == logging.DEBUG

    logging.getLogger("real_options.test").info("valued")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "valued" in log_file.read_text(encoding="utf-8")

    logging.getLogger("real_options.core.lattice").setLevel(logging.NOTSET)
