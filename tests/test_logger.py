import logging

from onemail.logger import CompactFilter, setup_global_logger


def make_record(msg, *args):
    return logging.LogRecord("onemail.test", logging.INFO, __file__, 1, msg, args or None, None)


def test_api_keys_are_masked():
    record = make_record("GET /fields headers={'X-BCP-API-KEY': 'secret-key'} api_key=other")

    CompactFilter().filter(record)

    assert "secret-key" not in record.msg
    assert "other" not in record.msg
    assert "'X-BCP-API-KEY': '***'" in record.msg
    assert "api_key=***" in record.msg


def test_ids_floats_and_module_names_are_shortened():
    record = make_record(
        "%s took %s in onemail.workflows.engine.routing",
        "a1e9166a-15f5-4ccf-b2ff-a6a92c37e645",
        0.012413125,
    )

    CompactFilter().filter(record)

    assert record.msg == "a1e9.. took 0.012 in engine.routing"
    assert record.args is None


def test_setup_adds_a_single_handler():
    logger = setup_global_logger("debug")
    setup_global_logger("info")

    assert logger.name == "onemail"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
