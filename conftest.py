"""Shared fixtures: recording surface and small family datasets."""

import pytest

from pedigree_maker_lib import PedigreeMaker
from pedigree_surfaces import RecordingSurface


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def trio():
    """Father A, mother B, one child C centred under the couple."""
    return [
        {"id": "A", "name": "Father", "sex": "M", "pos": {"x": 0, "y": 0}},
        {"id": "B", "name": "Mother", "sex": "F", "pos": {"x": 1, "y": 0}, "mate": "A"},
        {"id": "C", "name": "Child", "sex": "F", "pos": {"x": 0.5, "y": 1}, "parents": ["A", "B"]},
    ]


@pytest.fixture
def make_maker(surface):
    def _make(people, options=None, **kwargs):
        return PedigreeMaker(surface, people, options, **kwargs)

    return _make
