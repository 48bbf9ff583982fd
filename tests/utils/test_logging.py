import logging

from app.utils.logging import add_file_handler, log_error


def test_file_handler_receives_errors(tmp_path):
    log_file = add_file_handler(str(tmp_path / "logs"))
    root = logging.getLogger()
    handler = root.handlers[-1]
    try:
        log_error(ValueError("bad data URI"), "Upload for case1")
        handler.flush()
        assert log_file.name.startswith("onboarding_")
        assert "Upload for case1: bad data URI" in log_file.read_text(encoding="utf-8")
    finally:
        root.removeHandler(handler)
        handler.close()
