"""Shared fixtures for basura tests.

The toy index mimics the shape of real Unicode data: scripts interleave
(Latin spans Greek and Cyrillic), one script has no IDNA properties at all,
and the property table names codepoints the database does not have.
"""

from datetime import datetime, timezone

import pytest

from basura import GenerationConfig, ScriptCatalog, build_index
from basura._codepoints import CodepointIndex


def _toy_database():
    rows = []
    rows += [(c, "Nd", "Common") for c in range(0x30, 0x3A)]
    rows += [(c, "Lu", "Latin") for c in range(0x41, 0x45)]
    rows += [(c, "Ll", "Latin") for c in range(0x61, 0x7B)]
    rows.append((0xB7, "Po", "Common"))
    rows += [(c, "Mn", "Latin") for c in range(0x300, 0x310)]
    rows += [(c, "Ll", "Greek") for c in range(0x3B1, 0x3CA)]
    rows += [(c, "Lu", "Cyrillic") for c in range(0x410, 0x430)]
    rows += [(c, "Ll", "Cyrillic") for c in range(0x430, 0x450)]
    rows += [(c, "Lo", "Hebrew") for c in range(0x5D0, 0x5EB)]
    rows.append((0x1E01, "Ll", "Latin"))
    return rows


_TOY_PROPERTIES = [
    ("0030-0039", "PVALID"),
    ("0041-0044", "DISALLOWED"),
    ("0061-007A", "PVALID"),
    ("00B7", "CONTEXTO"),
    ("0100-017F", "UNASSIGNED"),
    ("0300-030F", "PVALID"),
    ("0378-0379", "PVALID"),
    ("03B1-03C9", "PVALID"),
    ("0410-042F", "DISALLOWED"),
    ("0430-044F", "PVALID"),
    ("1E01", "PVALID"),
]

TOY_TLDS = ("com", "рф", "ελ")


@pytest.fixture(scope="session")
def toy_database():
    return _toy_database()


@pytest.fixture(scope="session")
def toy_properties():
    return list(_TOY_PROPERTIES)


@pytest.fixture(scope="session")
def toy_build(toy_database, toy_properties):
    """(trie, meta) built once for all tests."""
    return build_index(toy_database, toy_properties)


@pytest.fixture(scope="session")
def toy_index(toy_build):
    return CodepointIndex(*toy_build)


@pytest.fixture(scope="session")
def catalog(toy_index):
    return ScriptCatalog(toy_index)


@pytest.fixture
def config():
    """Config usable with the toy index, with a fixed datetime center."""
    return GenerationConfig(
        max_depth=3,
        tlds=TOY_TLDS,
        date_center=datetime(2020, 1, 1, tzinfo=timezone.utc),
    )
