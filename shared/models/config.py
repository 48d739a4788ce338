from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single environment setting a client needs before it can boot.

    Attributes:
        env_key (str): Key without the client prefix, e.g. "BASE_URL" for "RAG_QDRANT_BASE_URL".
        val_type (str): "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when unset. None marks the key as required.
    """

    env_key: str
    val_type: str = "string"
    default: str | int | float | bool | list | None = None
