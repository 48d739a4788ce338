from pydantic import BaseModel


class EmbeddingValidation(BaseModel):
    """Report produced when checking a vector against an expected dimensionality."""

    valid: bool
    dimensions: int
    expected_dimensions: int
    all_finite: bool
    magnitude: float
    is_normalized: bool
    errors: list[str] = []


class TokenUsageEstimate(BaseModel):
    model: str
    total_tokens: int
    estimated_cost: float
    text_count: int
