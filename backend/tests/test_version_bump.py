"""
Tests for versionflow/services/versioning/bump.py - bump severity determination.
"""
import pytest

from versionflow.services.versioning.bump import bump_for_issue_type, determine_version_bump
from versionflow.services.versioning.types import BumpLevel, IssueRecord

MAPPING = {"BUG": "PATCH", "STORY": "MINOR", "EPIC": "MAJOR"}


def _issues(*types):
    return [IssueRecord(id=f"issue-{i}", type=t) for i, t in enumerate(types)]


class TestDetermineVersionBump:
    """Test highest-severity selection across issues."""

    @pytest.mark.parametrize("types,expected", [
        (["BUG"], BumpLevel.PATCH),
        (["BUG", "STORY"], BumpLevel.MINOR),
        (["STORY", "BUG", "BUG"], BumpLevel.MINOR),
        (["BUG", "EPIC", "STORY"], BumpLevel.MAJOR),
        (["CHORE"], BumpLevel.PATCH),
    ])
    def test_highest_severity_wins(self, types, expected):
        assert determine_version_bump(_issues(*types), MAPPING) == expected

    @pytest.mark.parametrize("types", [["BUG"], ["STORY"], ["BUG", "STORY"], ["CHORE", "BUG"]])
    def test_adding_major_issue_always_gives_major(self, types):
        assert determine_version_bump(_issues(*types, "EPIC"), MAPPING) == BumpLevel.MAJOR

    def test_empty_issue_list_is_rejected(self):
        with pytest.raises(ValueError):
            determine_version_bump([], MAPPING)


class TestBumpForIssueType:
    """Test single-type lookups."""

    def test_unmapped_type_is_patch(self):
        assert bump_for_issue_type("SPIKE", MAPPING) == BumpLevel.PATCH

    def test_lowercase_level_is_accepted(self):
        assert bump_for_issue_type("TASK", {"TASK": "minor"}) == BumpLevel.MINOR

    def test_unknown_level_is_patch(self):
        assert bump_for_issue_type("TASK", {"TASK": "HUGE"}) == BumpLevel.PATCH
