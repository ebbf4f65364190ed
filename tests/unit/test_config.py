"""
Unit tests for Settings bounds.
"""
import pytest
from pydantic import ValidationError

from inkmatch.core.config import Settings


@pytest.mark.unit
def test_min_match_score_defaults_to_cut():
    assert Settings().min_match_score == 0.2


@pytest.mark.unit
def test_min_match_score_can_only_be_raised():
    assert Settings(min_match_score=0.35).min_match_score == 0.35
    with pytest.raises(ValidationError):
        Settings(min_match_score=0.1)
