from pydantic import BaseModel


class ScrollPage(BaseModel):
    """Points returned by a scroll over the collection.

    Attributes:
        points:           Raw point dicts with "id" and "payload".
        next_page_offset: Cursor of the following page; None on the last page
                          and on pages merged by do_scroll_all().
    """

    points: list[dict] = []
    next_page_offset: str | int | None = None

    def payload_values(self, key: str) -> set:
        """Distinct values of a top-level payload key across the page."""
        return {
            (point.get("payload") or {})[key]
            for point in self.points
            if (point.get("payload") or {}).get(key) is not None
        }
