"""
Pytest configuration and shared fixtures for the credential proof tests.

1. Adds project root and tests root to sys.path for imports
2. Sends log output to a temporary file
3. Shares the (expensive) key pairs across a test session
"""

import random
import sys
from pathlib import Path

import pytest

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

import importlib

_credentials = importlib.import_module("fixtures.credentials")

NameAndBirthYear = _credentials.NameAndBirthYear
BirthYearChecker = _credentials.BirthYearChecker
TREE_PARAMS = _credentials.TREE_PARAMS
ROOT_SCHEME = _credentials.ROOT_SCHEME
SMALL_HEIGHT = _credentials.SMALL_HEIGHT


@pytest.fixture(scope="session", autouse=True)
def _logging(tmp_path_factory):
    from utils import init_logging
    init_logging(str(tmp_path_factory.mktemp("logs") / "zkcred-test.log"), level="DEBUG", console=False)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture(scope="session")
def tree_params():
    return TREE_PARAMS


@pytest.fixture(scope="session")
def root_scheme():
    return ROOT_SCHEME


@pytest.fixture(scope="session")
def checker():
    return BirthYearChecker(reference_year=2024)


@pytest.fixture(scope="session")
def tree_keys():
    from trees import gen_tree_memb_crs
    return gen_tree_memb_crs(TREE_PARAMS, SMALL_HEIGHT, rng=random.Random(7))


@pytest.fixture(scope="session")
def pred_keys(checker):
    from circuits.predicate import gen_pred_crs
    return gen_pred_crs(checker, NameAndBirthYear, rng=random.Random(8))
