import pytest
import sys
from pathlib import Path

# Add the project root to sys.path so app / joltage import without an install
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from app import app as flask_app  # noqa: E402


SAMPLE_BANKS = [
    "987654321111111",
    "811111111111119",
    "234234234234278",
    "818181911112111",
]


@pytest.fixture
def sample_banks():
    """The four example banks from the puzzle statement."""
    return list(SAMPLE_BANKS)


@pytest.fixture
def sample_file(tmp_path: Path):
    """Write the example banks to an input file, newline terminated."""
    path = tmp_path / "input.txt"
    path.write_text("\n".join(SAMPLE_BANKS) + "\n")
    return path


@pytest.fixture
def client():
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as c:
        yield c


@pytest.fixture
def runner():
    return flask_app.test_cli_runner()
