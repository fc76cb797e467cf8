from __future__ import annotations

import logging

from loguru import logger

from community_crawler.utils.logging_config import InterceptHandler


def test_stdlib_records_are_routed_to_loguru() -> None:
    messages: list[str] = []
    sink_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    std_logger = logging.getLogger("community_crawler.tests.intercept")
    std_logger.handlers = [InterceptHandler()]
    std_logger.propagate = False
    std_logger.setLevel(logging.INFO)

    try:
        std_logger.warning("browser %s disconnected", "chromium")
    finally:
        logger.remove(sink_id)

    assert messages == ["browser chromium disconnected"]
