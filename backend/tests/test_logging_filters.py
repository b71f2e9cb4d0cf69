"""Log scrubbing."""
from __future__ import annotations

import logging

from app.security.logging_filters import SensitiveFilter, scrub


def test_scrub_redacts_tokens_passwords_and_member_ids() -> None:
    message = (
        'Authorization: Bearer abc.def-ghi {"password": "hunter2", '
        '"memberId": "VSP-1234", "insurance_member_id": "EM-99"}'
    )
    scrubbed = scrub(message)
    assert "abc.def-ghi" not in scrubbed
    assert "hunter2" not in scrubbed
    assert "VSP-1234" not in scrubbed
    assert "EM-99" not in scrubbed
    assert scrubbed.count("**REDACTED**") == 4


def test_filter_rewrites_record_message() -> None:
    record = logging.LogRecord(
        "test", logging.INFO, __file__, 1, 'login {"password": "secret"}', None, None
    )
    assert SensitiveFilter().filter(record) is True
    assert "secret" not in record.getMessage()
