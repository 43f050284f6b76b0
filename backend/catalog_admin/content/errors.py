class DuplicateContentError(Exception):
    """A content item with the same (external_id, source) already exists."""

    def __init__(self, external_id: str, source: str):
        self.external_id = external_id
        self.source = source
        super().__init__(f"Content {source}:{external_id} already exists")
