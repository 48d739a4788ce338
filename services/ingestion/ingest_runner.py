"""Ingest runner entry point.

Indexes local text files into a bot's knowledge base collection, using the
same clients and services as the API server. The bot must be listed in the
BOTS_FILE registry.

Usage:
    python -m services.ingestion.ingest_runner --bot-id support docs/*.md
    python -m services.ingestion.ingest_runner --bot-id support --delete <document_id>
"""

import argparse
import asyncio
import mimetypes
import sys
import uuid
from pathlib import Path

from services.ServiceContainer import ServiceContainer, build_container
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import KnowledgeBaseError
from shared.logging.logging_setup import setup_logging
from shared.models.bot import DocumentRecord

logging = setup_logging()

CONTENT_TYPES_BY_SUFFIX = {
    ".md": "markdown",
    ".markdown": "markdown",
    ".py": "code",
    ".js": "code",
    ".ts": "code",
    ".html": "html",
    ".htm": "html",
    ".csv": "csv",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Index text files into a bot's knowledge base",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--bot-id", required=True, help="Bot whose collection receives the documents")
    parser.add_argument("files", nargs="*", type=Path, help="Text files to ingest")
    parser.add_argument("--delete", metavar="DOCUMENT_ID", action="append", default=[], help="Remove a document's vectors")
    parser.add_argument("--concurrency", type=int, default=2, help="Documents processed at the same time")
    return parser.parse_args(argv)


def build_record(bot_id: str, path: Path) -> DocumentRecord:
    mime_type = mimetypes.guess_type(path.name)[0] or "text/plain"
    return DocumentRecord(
        id=str(uuid.uuid4()),
        bot_id=bot_id,
        name=path.name,
        mime_type=mime_type,
        content_type=CONTENT_TYPES_BY_SUFFIX.get(path.suffix.lower(), "text"),
        size_bytes=path.stat().st_size,
    )


async def ingest_files(services: ServiceContainer, bot_id: str, files: list[Path], concurrency: int) -> tuple[int, int]:
    """Ingest files with bounded concurrency. A failing file is logged and skipped.

    Returns:
        tuple[int, int]: Number of succeeded and failed files.
    """
    bot = await services.bot_store.get_bot(bot_id)
    if bot is None:
        raise ValueError(f"Bot '{bot_id}' is not configured. Add it to the BOTS_FILE registry.")

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run_one(path: Path) -> bool:
        async with semaphore:
            try:
                record = build_record(bot.id, path)
                content = path.read_bytes()
            except OSError as e:
                logging.error("Skipping '%s': cannot read file: %s", path, e)
                return False
            await services.document_store.save_document(record)
            try:
                await services.ingestion_service.ingest_file(bot, record, content, record.mime_type)
                return True
            except KnowledgeBaseError as e:
                logging.error("Skipping '%s': %s", path, e)
                return False

    results = await asyncio.gather(*(run_one(path) for path in files))
    succeeded = sum(1 for ok in results if ok)
    return succeeded, len(results) - succeeded


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = HelperConfig(logger=logging)
    services = build_container(config)

    try:
        await services.boot()
        response = await services.rag_client.do_healthcheck()
        if not response.is_success:
            logging.error("Vector store is not reachable (status %d). Aborting.", response.status_code)
            return 1

        for document_id in args.delete:
            deleted = await services.ingestion_service.delete_document(args.bot_id, document_id)
            logging.info("Removed %d vectors of document '%s'.", deleted, document_id)

        if args.files:
            succeeded, failed = await ingest_files(services, args.bot_id, args.files, args.concurrency)
            logging.info("Ingestion finished: %d succeeded, %d failed.", succeeded, failed, color="green" if not failed else "yellow")
            return 1 if failed else 0
        return 0
    finally:
        await services.close()


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
