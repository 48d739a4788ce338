"""Chunker.

Splits extracted document text into overlapping passages. Splitting is
recursive: the first separator of the content type's priority list that
occurs in the text is used, pieces that are still too long are split again
with the remaining separators, and small pieces are merged back up to the
size limit while carrying ``overlap`` characters into the next passage.
"""

from typing import Callable

import tiktoken

from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import EmptyInputError, ValidationError
from shared.models.passage import ChunkOptions, Passage, utc_now
from shared.models.settings import PipelineSettings

DEFAULT_SEPARATORS = ["\n\n", "\n", " ", ""]

SEPARATORS_BY_CONTENT_TYPE: dict[str, list[str]] = {
    "markdown": ["\n## ", "\n### ", "\n#### ", "\n\n", "\n", " ", ""],
    "code": ["\nfunction ", "\nclass ", "\ndef ", "\n\n", "\n", " ", ""],
    "html": ["</div>", "</p>", "</section>", "\n\n", "\n", " ", ""],
    "csv": ["\n", ",", " ", ""],
    "pdf": ["\n\n", "\n", ". ", " ", ""],
    "text": DEFAULT_SEPARATORS,
}

CONTENT_TYPE_ALIASES: dict[str, str] = {
    "md": "markdown",
    "javascript": "code",
    "js": "code",
    "python": "code",
    "py": "code",
    "htm": "html",
    "txt": "text",
    "plain": "text",
}

TokenCounter = Callable[[str], int]


def normalize_content_type(content_type: str | None) -> str:
    value = (content_type or "text").strip().lower()
    value = CONTENT_TYPE_ALIASES.get(value, value)
    return value if value in SEPARATORS_BY_CONTENT_TYPE else "text"


def get_separators(content_type: str | None) -> list[str]:
    """Separator priority list for a content type, plain text separators for unknown types."""
    return list(SEPARATORS_BY_CONTENT_TYPE[normalize_content_type(content_type)])


def build_token_counter(model: str) -> TokenCounter:
    """Token counter using the tokenizer of the given embedding model.

    Unknown model names fall back to cl100k_base, the encoding of the
    OpenAI text-embedding-3 family.
    """
    try:
        encoding = tiktoken.encoding_for_model(model)
    except KeyError:
        encoding = tiktoken.get_encoding("cl100k_base")
    return lambda text: len(encoding.encode(text, disallowed_special=()))


def total_tokens(passages: list[Passage]) -> int:
    return sum(p.token_count for p in passages)


class ChunkerService:
    """Pure, synchronous text splitter. Safe to share across concurrent ingestions."""

    def __init__(
        self,
        helper_config: HelperConfig,
        settings: PipelineSettings | None = None,
        token_counter: TokenCounter | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings = settings or PipelineSettings.from_config(helper_config)
        self._token_counter = token_counter

    ##########################################
    ################ GETTER ##################
    ##########################################

    def default_options(self, content_type: str = "text") -> ChunkOptions:
        return ChunkOptions(
            max_chunk_size=self._settings.chunk_max_size,
            overlap=self._settings.chunk_overlap,
            content_type=content_type,
        )

    def count_tokens(self, text: str) -> int:
        # tokenizer is loaded on first use, loading it may download the encoding
        if self._token_counter is None:
            self._token_counter = build_token_counter(self._settings.embed_model)
        return self._token_counter(text)

    ##########################################
    ############### CHECKER ##################
    ##########################################

    @staticmethod
    def validate_options(options: ChunkOptions) -> None:
        """
        Raises:
            ValidationError: If max_chunk_size is not positive or overlap is outside [0, max_chunk_size).
        """
        if options.max_chunk_size <= 0:
            raise ValidationError(f"max_chunk_size must be positive, got {options.max_chunk_size}.")
        if options.overlap < 0 or options.overlap >= options.max_chunk_size:
            raise ValidationError(
                f"overlap must be >= 0 and < max_chunk_size ({options.max_chunk_size}), got {options.overlap}."
            )
        if options.separators is not None and not options.separators:
            raise ValidationError("separators must not be an empty list.")

    ##########################################
    ################# CORE ###################
    ##########################################

    def chunk(self, text: str, metadata: dict | None = None, options: ChunkOptions | None = None) -> list[Passage]:
        """Split text into ordered passages.

        Args:
            text (str): Extracted document text.
            metadata (dict | None): Caller metadata. "document_id" and "bot_id"
                become Passage fields, everything else (e.g. "document_name")
                is kept in Passage.metadata.
            options (ChunkOptions | None): Size, overlap and content type. Settings defaults if None.

        Returns:
            list[Passage]: Passages in document order.

        Raises:
            ValidationError: If the options are inconsistent.
            EmptyInputError: If the text is empty after trimming or yields no passages.
        """
        options = options or self.default_options()
        self.validate_options(options)

        if not isinstance(text, str) or not text.strip():
            raise EmptyInputError("Cannot chunk empty text.")

        content_type = normalize_content_type(options.content_type)
        separators = list(options.separators) if options.separators else get_separators(content_type)

        pieces = self._split_text(text, separators, options.max_chunk_size, options.overlap)
        pieces = [piece.strip() for piece in pieces if piece.strip()]
        if not pieces:
            raise EmptyInputError("Chunking produced no passages.")

        metadata = dict(metadata or {})
        document_id = metadata.pop("document_id", None)
        bot_id = metadata.pop("bot_id", None)
        created_at = utc_now()

        passages = [
            Passage(
                text=piece,
                sequence_index=index,
                total_siblings=len(pieces),
                source_document_id=str(document_id) if document_id is not None else None,
                bot_id=str(bot_id) if bot_id is not None else None,
                token_count=self.count_tokens(piece),
                size_bytes=len(piece.encode("utf-8")),
                content_type=content_type,
                created_at=created_at,
                metadata={
                    **metadata,
                    "chunk_overlap": options.overlap,
                    "max_chunk_size": options.max_chunk_size,
                },
            )
            for index, piece in enumerate(pieces)
        ]

        self.logging.debug(
            "Chunked %d characters into %d passages (content type '%s', size %d, overlap %d).",
            len(text), len(passages), content_type, options.max_chunk_size, options.overlap,
        )
        return passages

    ##########################################
    ############### SPLITTING ################
    ##########################################

    def _split_text(self, text: str, separators: list[str], max_size: int, overlap: int) -> list[str]:
        separator = separators[-1]
        remaining: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = ""
                break
            if candidate in text:
                separator = candidate
                remaining = separators[i + 1:]
                break

        final: list[str] = []
        small: list[str] = []
        for piece in self._split_keep_separator(text, separator):
            if len(piece) < max_size:
                small.append(piece)
                continue
            if small:
                final.extend(self._merge_splits(small, max_size, overlap))
                small = []
            if remaining:
                final.extend(self._split_text(piece, remaining, max_size, overlap))
            else:
                # no finer separator left, emitted oversized
                final.append(piece)
        if small:
            final.extend(self._merge_splits(small, max_size, overlap))
        return final

    @staticmethod
    def _split_keep_separator(text: str, separator: str) -> list[str]:
        """Split on separator, keeping it at the start of the following piece."""
        if separator == "":
            return list(text)
        parts = text.split(separator)
        pieces = [parts[0]] + [separator + part for part in parts[1:]]
        return [piece for piece in pieces if piece]

    def _merge_splits(self, splits: list[str], max_size: int, overlap: int) -> list[str]:
        """Greedily join pieces up to max_size, starting each new passage with up to overlap trailing characters."""
        merged: list[str] = []
        current: list[str] = []
        total = 0
        for piece in splits:
            length = len(piece)
            if current and total + length > max_size:
                merged.append("".join(current))
                while current and (total > overlap or total + length > max_size):
                    total -= len(current[0])
                    current.pop(0)
            current.append(piece)
            total += length
        if current:
            merged.append("".join(current))
        return merged
