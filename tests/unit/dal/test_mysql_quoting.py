from dal.mysql.quoting import quote_identifier


def test_quote_plain_identifier():
    """Wrap identifiers in backticks."""
    assert quote_identifier("orders") == "`orders`"


def test_quote_doubles_embedded_backticks():
    """Embedded backticks cannot terminate the identifier."""
    assert quote_identifier("we`ird") == "`we``ird`"


def test_quote_identifier_with_spaces_and_dots():
    """Spaces and dots stay inside the quoted name."""
    assert quote_identifier("my db.v2") == "`my db.v2`"
