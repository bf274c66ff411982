from __future__ import annotations

from typing import List, Tuple

import pytest

from nsbus import new_instance


class RecordingSink:
    def __init__(self) -> None:
        self.records: List[Tuple[str, str]] = []

    def warn(self, message: str) -> None:
        self.records.append(("warn", message))

    def error(self, message: str) -> None:
        self.records.append(("error", message))

    def info(self, message: str) -> None:
        self.records.append(("info", message))

    def messages(self, level: str) -> List[str]:
        return [message for record_level, message in self.records if record_level == level]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def bus(sink: RecordingSink):
    return new_instance(log=sink)


@pytest.fixture
def calls():
    return []
