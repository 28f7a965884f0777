"""
Model Tests
"""

import pytest


class TestTagModel:
    """Tests for the Tag model."""

    def test_tag_creation(self):
        """Test tag creation."""
        from models.tag import Tag

        tag = Tag(name="Quantum", source="llm")

        assert tag.name == "Quantum"
        assert tag.source == "llm"
        assert tag.library_id == 1
        assert tag.id is not None
        assert tag.created_at is not None

    def test_tag_from_dict(self):
        """Test deserialization from a database row."""
        from models.tag import Tag

        tag = Tag.from_dict({
            'id': 'tag-123',
            'name': 'Physics',
            'library_id': 2,
            'source': 'user',
            'created_at': '2024-01-01T12:00:00',
        })

        assert tag.id == 'tag-123'
        assert tag.library_id == 2
        assert tag.created_at.year == 2024
        assert tag.to_dict()['created_at'] == '2024-01-01T12:00:00'

    def test_tag_from_dict_missing_fields(self):
        """Test deserialization from incomplete dictionary."""
        from models.tag import Tag

        tag = Tag.from_dict({'name': 'Pop', 'created_at': 'not a date'})

        assert tag.name == 'Pop'
        assert tag.source == 'user'
        assert tag.id is not None

    def test_tag_equality(self):
        """Test tag equality (by ID)."""
        from models.tag import Tag

        assert Tag(id="same", name="A") == Tag(id="same", name="B")
        assert Tag(id="one", name="A") != Tag(id="two", name="A")
        assert len({Tag(id="same"), Tag(id="same")}) == 1


class TestLibraryItem:

    def test_item_kinds(self):
        from models.library_item import LibraryItem

        assert LibraryItem(item_type="book").is_regular
        assert not LibraryItem(item_type="note").is_regular
        attachment = LibraryItem(item_type="attachment", parent_id=3)
        assert attachment.is_attachment
        assert not attachment.is_regular

    def test_display_fields(self):
        from models.library_item import Creator, LibraryItem

        item = LibraryItem(creators=[Creator("Marie", "Curie"), Creator(last_name="Bohr")])

        assert item.display_title == "(untitled)"
        assert item.creators_str == "Marie Curie; Bohr"
        assert item.to_dict()['creators'][1] == {'first_name': '', 'last_name': 'Bohr'}


class TestSuggestionRecord:

    def test_status(self):
        from models.tagging import SuggestionRecord

        record = SuggestionRecord(item_id=1, title="T", suggested_tags=("A",))

        assert record.status == "suggested"
        assert record.with_applied(["A"]).status == "applied"
        assert record.with_error("boom").status == "error"
        assert SuggestionRecord(item_id=1, title="T").status == "no_new_tags"
        # Derived copies leave the original untouched
        assert record.applied_tags == ()

    def test_records_are_frozen(self):
        from dataclasses import FrozenInstanceError
        from models.tagging import SuggestionRecord

        record = SuggestionRecord(item_id=1, title="T")
        with pytest.raises(FrozenInstanceError):
            record.error = "x"


class TestBatchProgress:

    def test_counts_and_summary(self):
        from models.tagging import BatchProgress, SuggestionRecord

        progress = BatchProgress(
            total=4,
            current=3,
            skipped=1,
            results=(
                SuggestionRecord(1, "A", ("x", "y"), ("x", "y")),
                SuggestionRecord(2, "B", ("z",), ("z",)),
                SuggestionRecord.failure(3, "C", "HTTP 500"),
            ),
        )

        assert progress.applied_tag_count == 3
        assert progress.error_count == 1
        assert progress.percent == 75
        assert progress.summary() == "Done: 3 tags added across 3 items (1 errors)"

    def test_cancelled_summary(self):
        from models.tagging import BatchProgress

        assert BatchProgress(total=5, current=2, cancelled=True).summary() == "Cancelled: processed 2 of 5"

    def test_empty_batch_is_complete(self):
        from models.tagging import BatchProgress

        assert BatchProgress(total=0).percent == 100
