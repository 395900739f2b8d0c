def quote_identifier(name: str) -> str:
    """Wrap a MySQL identifier in backticks, doubling any embedded backticks."""
    return "`" + str(name).replace("`", "``") + "`"
