"""Tests for free-text markup stripping."""

from __future__ import annotations

from mass_importer.pipeline.sanitize import sanitize_record, strip_markup


class TestStripMarkup:
    """HTML removal."""

    def test_plain_text_untouched(self):
        text = "A bronze statue, 3 > 2 metres tall"
        assert strip_markup(text) is text

    def test_tags_and_entities_removed(self):
        assert strip_markup("<b>Digital</b> &amp; <i>Orca</i>") == "Digital & Orca"

    def test_line_breaks_preserved(self):
        assert strip_markup("First line<br>Second line<br/>Third") == "First line\nSecond line\nThird"

    def test_script_and_style_dropped(self):
        text = "<p>Visible</p><script>alert('x')</script><style>p {}</style>"
        assert strip_markup(text) == "Visible"

    def test_whitespace_collapsed(self):
        assert strip_markup("<p>Too    many\t spaces</p>\n\n\n\n<p>Next</p>") == "Too many spaces\n\nNext"


class TestSanitizeRecord:
    """Record-level sanitising."""

    def test_clean_record_returned_as_is(self, make_record):
        record = make_record(description="Plain description")
        assert sanitize_record(record) is record

    def test_free_text_fields_cleaned(self, make_record):
        record = make_record(
            title="<b>Digital Orca</b>",
            description="Pixelated <i>orca</i><br>by the convention centre",
            artists=["<span>Douglas Coupland</span>", "<br>"],
        )

        cleaned = sanitize_record(record)

        assert cleaned.title == "Digital Orca"
        assert cleaned.description == "Pixelated orca\nby the convention centre"
        assert cleaned.artists == ["Douglas Coupland"]
        assert record.title == "<b>Digital Orca</b>"

    def test_title_kept_when_stripping_empties_it(self, make_record):
        record = make_record(title="<img src='x.jpg'>")
        assert sanitize_record(record).title == "<img src='x.jpg'>"

    def test_empty_description_becomes_none(self, make_record):
        record = make_record(description="<p></p>")
        assert sanitize_record(record).description is None
