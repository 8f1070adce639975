"""
Recursive, streaming crawl of the image source.

Every folder is walked by its own asyncio task. All tasks write into one
`ItemChannel` that the pipeline reads from, so images start flowing before
the whole tree has been listed. The consumer closing the channel is the
only cancellation signal: producers check it before every send and stop.

Folder recursion has no depth limit and no cycle detection; a source whose
folder graph contains a cycle will never finish crawling.
"""

import asyncio
from typing import Awaitable, Iterable, List, Optional, Set, Union

from loguru import logger

from .core import FolderRef, ImageFormat, SourceItem, Tag, SUPPORTED_MIME_TYPES
from ..exceptions import TreeSyncException, ListingException, MissingRequiredFieldException
from ..providers.base import SourceProvider, RemoteEntry

CrawlResult = Union[SourceItem, TreeSyncException]

_DONE = object()


class ItemChannel:
    """Unbounded multi-producer, single-consumer channel of crawl results."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._producers = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def add_producer(self) -> None:
        self._producers += 1

    def producer_done(self) -> None:
        self._producers -= 1
        if self._producers == 0:
            self._queue.put_nowait(_DONE)

    def send(self, result: CrawlResult) -> bool:
        """Queue a result; False once the consumer has closed the channel."""
        if self._closed:
            return False
        self._queue.put_nowait(result)
        return True

    async def receive(self):
        """Next result, or `_DONE` once every producer has finished."""
        if self._closed:
            return _DONE
        result = await self._queue.get()
        if result is _DONE:
            self._closed = True
        return result

    def close(self) -> None:
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()


class CrawlStream:
    """Async iterator over crawl results; closing it stops the crawl."""

    def __init__(self, channel: ItemChannel):
        self._channel = channel

    def __aiter__(self):
        return self

    async def __anext__(self) -> CrawlResult:
        result = await self._channel.receive()
        if result is _DONE:
            raise StopAsyncIteration
        return result

    async def aclose(self) -> None:
        self._channel.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


class ImageCrawler:
    """Turns a folder hierarchy on the source into a flat stream of images."""

    def __init__(self, source: SourceProvider, supported_mime_types: Optional[Iterable[str]] = None):
        self.source = source
        self.supported_mime_types = frozenset(supported_mime_types or SUPPORTED_MIME_TYPES)
        # Number of folder tasks started, the crawl root included
        self.tasks_spawned = 0
        self._tasks: Set[asyncio.Task] = set()

    def crawl(self, root: FolderRef) -> CrawlStream:
        """
        Start crawling `root` and return the stream of results.

        Immediate subfolders of the root are tag folders; files found
        anywhere below them with a supported mime type are yielded as
        SourceItems, and listing failures are yielded as exceptions.
        Must be called with a running event loop.
        """
        channel = ItemChannel()
        self._spawn(channel, self._walk_root(channel, root))
        return CrawlStream(channel)

    def _spawn(self, channel: ItemChannel, walker: Awaitable[None]) -> None:
        channel.add_producer()
        self.tasks_spawned += 1
        task = asyncio.create_task(self._run_walker(channel, walker))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_walker(self, channel: ItemChannel, walker: Awaitable[None]) -> None:
        try:
            await walker
        except TreeSyncException as e:
            channel.send(e)
        except Exception as e:
            logger.opt(exception=True).error(f"Unexpected error while crawling: {e}")
            channel.send(ListingException(f"unexpected crawl error: {e}"))
        finally:
            channel.producer_done()

    async def list_folder(self, folder_id: str) -> List[RemoteEntry]:
        """All children of a folder, following continuation pages."""
        results: List[RemoteEntry] = []
        token = None
        logger.trace(f"Listing files in folder {folder_id}")
        while True:
            page = await self.source.list_children(folder_id, token)
            results.extend(page.entries)
            token = page.next_token
            if not token:
                break
        logger.trace(f"Found {len(results)} files in folder {folder_id}")
        return results

    async def _walk_root(self, channel: ItemChannel, root: FolderRef) -> None:
        entries = await self.list_folder(root.id)
        for entry in entries:
            if channel.closed:
                return
            if not entry.is_folder:
                logger.debug(f"Skipping '{entry.name}' outside of any tag folder")
                continue
            if not entry.id:
                channel.send(MissingRequiredFieldException("id"))
                continue

            tag = Tag.from_name(entry.name)
            logger.info(
                "Searching tag folder",
                tag=tag.value,
                folder_id=entry.id,
                folder_name=entry.name,
            )
            folder = FolderRef(id=entry.id, name=entry.name)
            self._spawn(channel, self._walk_folder(channel, folder, tag, entry.name))

    async def _walk_folder(self, channel: ItemChannel, folder: FolderRef, tag: Tag, full_path: str) -> None:
        entries = await self.list_folder(folder.id)
        for entry in entries:
            if channel.closed:
                return

            if entry.mime_type in self.supported_mime_types:
                if not entry.id:
                    channel.send(MissingRequiredFieldException("id"))
                    continue
                if not channel.send(self._to_item(entry, tag, full_path)):
                    return
            elif entry.is_folder:
                if not entry.id:
                    channel.send(MissingRequiredFieldException("id"))
                    continue
                child = FolderRef(id=entry.id, name=entry.name)
                self._spawn(channel, self._walk_folder(channel, child, tag, f"{full_path}/{entry.name}"))
            else:
                logger.warning(
                    "Unsupported file type",
                    mime_type=entry.mime_type,
                    file_name=entry.name,
                    folder_id=folder.id,
                    folder_name=folder.name,
                    full_path=full_path,
                    tag=tag.value,
                )

    @staticmethod
    def _to_item(entry: RemoteEntry, tag: Tag, full_path: str) -> SourceItem:
        return SourceItem(
            id=entry.id,
            name=entry.name,
            tag=tag,
            full_path=f"{full_path}/{entry.name}",
            digest=entry.digest or "",
            format=ImageFormat.from_mime(entry.mime_type),
        )
