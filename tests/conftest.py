import inspect
import json
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest

from hirelens.models import JobPosting

# Path to tests/fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeProvider:
    """
    Scripted InferenceProvider. embed/complete take the input text and return
    (or raise) whatever the test wants; coroutines are awaited, so a test can
    inject latency with asyncio.sleep.
    """

    def __init__(
            self,
            *,
            embed: Optional[Callable[[str], Any]] = None,
            complete: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._embed = embed or (lambda text: (1.0, 0.0, 0.0))
        self._complete = complete or (lambda prompt: "")
        self.embed_calls: List[str] = []
        self.complete_calls: List[str] = []
        self.systems: List[Optional[str]] = []

    async def embed(self, text: str):
        self.embed_calls.append(text)
        out = self._embed(text)
        if inspect.isawaitable(out):
            out = await out
        return tuple(out)

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        self.complete_calls.append(prompt)
        self.systems.append(system)
        out = self._complete(prompt)
        if inspect.isawaitable(out):
            out = await out
        return out


@pytest.fixture
def make_provider():
    """
    Fixture that returns the FakeProvider class so tests can build one with
    their own embed / complete scripts.
    """
    return FakeProvider


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def load_text(fixtures_dir):
    """
    Fixture that returns a function: load_text("file.ext") -> str
    """
    def _load(name: str) -> str:
        return (fixtures_dir / name).read_text(encoding="utf-8")
    return _load


@pytest.fixture
def load_jobs(load_text):
    """
    Fixture that returns a function: load_jobs("file.json") -> list[JobPosting]
    """
    def _load(name: str) -> List[JobPosting]:
        return [JobPosting.from_dict(d) for d in json.loads(load_text(name))]
    return _load
