from pydantic import BaseModel, Field


class SearchHit(BaseModel):
    """One scored point returned by a similarity search."""

    id: str | int
    score: float
    payload: dict = Field(default_factory=dict)


class CollectionInfo(BaseModel):
    """Subset of a collection description the adapter relies on.

    Attributes:
        name:        Collection name.
        point_count: Number of stored points.
        vector_size: Dimensionality fixed at creation time, None if the backend does not report it.
        distance:    Distance metric, e.g. "Cosine".
        status:      Backend health of the collection, e.g. "green".
    """

    name: str
    point_count: int = 0
    vector_size: int | None = None
    distance: str | None = None
    status: str | None = None
