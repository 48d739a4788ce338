from pydantic import BaseModel


class ScrollResult(BaseModel):
    """A single page of points read without a query vector.

    Attributes:
        result:           List of point dicts returned by the scroll.
        status:           Backend status string (e.g. "ok").
        time:             Time taken by the backend to execute the request.
        next_page_offset: Cursor for the next page, or None on the last page.
    """

    result: list[dict]
    status: str
    time: float
    next_page_offset: str | int | None = None
