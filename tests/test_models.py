from pubkiosk.models import Publication


def test_title_is_title_cased() -> None:
    publication = Publication(title="LEARNING PYTHON", catalog_id="1")
    assert publication.title == "Learning Python"


def test_missing_title_becomes_untitled() -> None:
    assert Publication(title=None, catalog_id="1").title == "Untitled"


def test_isbns_are_truncated_and_nulls_dropped() -> None:
    publication = Publication(
        catalog_id="1", isbns=["0131103628 (pbk.)", None, "", "9780131103627"]
    )
    assert publication.isbns == ["0131103628", "9780131103627"]


def test_authors_drop_missing_entries() -> None:
    publication = Publication(catalog_id="1", authors=[None, "Kernighan, Brian W.", " "])
    assert publication.authors == ["Kernighan, Brian W."]
    assert publication.author_line == "Kernighan, Brian W."


def test_str_shows_first_isbn() -> None:
    publication = Publication(title="demo", catalog_id="1", isbns=["123 (hbk.)"])
    assert str(publication) == "Publication<Title: Demo, ISBN: 123>"
