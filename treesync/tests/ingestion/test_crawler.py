"""
Tests for the recursive streaming crawl.
"""

import asyncio

import pytest

from treesync.exceptions import ListingException, MissingRequiredFieldException, TreeSyncException
from treesync.ingestion.core import FolderRef, ImageFormat, SourceItem, Tag
from treesync.ingestion.crawler import ImageCrawler, ItemChannel
from treesync.providers.base import FOLDER_MIME_TYPE, RemoteEntry

ROOT = "root"


async def collect(crawler, root_id=ROOT):
    items, errors = [], []
    async with crawler.crawl(FolderRef(id=root_id, name=root_id)) as stream:
        async for result in stream:
            if isinstance(result, TreeSyncException):
                errors.append(result)
            else:
                items.append(result)
    return items, errors


@pytest.fixture
def tree(source):
    """
    root/
      marked/        a.jpg, b.heic, notes.txt, 2024/ c.png, 2024/deep/ d.webp
      unmarked/      e.jpg
      misc/          f.jpg
      loose.jpg
    """
    marked = source.add_folder(ROOT, "marked")
    unmarked = source.add_folder(ROOT, "unmarked")
    misc = source.add_folder(ROOT, "misc")
    source.add_file(ROOT, "loose.jpg", b"x")

    source.add_file(marked, "a.jpg", b"a")
    source.add_file(marked, "b.heic", b"b", mime_type="image/heic")
    source.add_file(marked, "notes.txt", b"n", mime_type="text/plain")
    year = source.add_folder(marked, "2024")
    source.add_file(year, "c.png", b"c", mime_type="image/png")
    deep = source.add_folder(year, "deep")
    source.add_file(deep, "d.webp", b"d", mime_type="image/webp")

    source.add_file(unmarked, "e.jpg", b"e")
    source.add_file(misc, "f.jpg", b"f")
    return source


async def test_yields_every_supported_file(tree):
    crawler = ImageCrawler(tree)

    items, errors = await collect(crawler)

    assert errors == []
    assert sorted(i.name for i in items) == ["a.jpg", "b.heic", "c.png", "d.webp", "e.jpg", "f.jpg"]
    # root, marked, unmarked, misc, 2024, deep
    assert crawler.tasks_spawned == 6


async def test_items_carry_tag_path_and_format(tree):
    items, _ = await collect(ImageCrawler(tree))
    by_name = {i.name: i for i in items}

    assert by_name["a.jpg"].tag is Tag.MARKED
    assert by_name["d.webp"].tag is Tag.MARKED
    assert by_name["d.webp"].full_path == "marked/2024/deep/d.webp"
    assert by_name["d.webp"].format is ImageFormat.WEBP
    assert by_name["b.heic"].format is ImageFormat.HEIF
    assert by_name["e.jpg"].tag is Tag.UNMARKED
    assert by_name["f.jpg"].tag is Tag.UNKNOWN
    assert by_name["a.jpg"].digest == "sha-a.jpg"
    assert by_name["a.jpg"].id == "root/marked/a.jpg"


async def test_files_directly_under_root_are_skipped(tree):
    items, _ = await collect(ImageCrawler(tree))
    assert "loose.jpg" not in {i.name for i in items}


async def test_follows_listing_pages(tree):
    tree.page_size = 1
    items, errors = await collect(ImageCrawler(tree))

    assert errors == []
    assert len(items) == 6
    tokens = [token for folder, token in tree.list_calls if folder == "root/marked"]
    assert tokens == [None, "1", "2", "3"]


async def test_listing_error_does_not_stop_siblings(tree):
    tree.failing_folders.add("root/marked/2024")

    items, errors = await collect(ImageCrawler(tree))

    assert sorted(i.name for i in items) == ["a.jpg", "b.heic", "e.jpg", "f.jpg"]
    assert len(errors) == 1
    assert isinstance(errors[0], ListingException)


async def test_root_listing_error_is_reported(source):
    source.failing_folders.add(ROOT)
    items, errors = await collect(ImageCrawler(source))
    assert items == []
    assert len(errors) == 1


async def test_entry_without_id_is_an_error(source):
    marked = source.add_folder(ROOT, "marked")
    source.add_entry(marked, RemoteEntry(id=None, name="ghost.jpg", mime_type="image/jpeg"))
    source.add_entry(marked, RemoteEntry(id=None, name="ghost", mime_type=FOLDER_MIME_TYPE))
    source.add_file(marked, "real.jpg", b"r")

    items, errors = await collect(ImageCrawler(source))

    assert [i.name for i in items] == ["real.jpg"]
    assert len(errors) == 2
    assert all(isinstance(e, MissingRequiredFieldException) for e in errors)


async def test_empty_tree_terminates(source):
    items, errors = await collect(ImageCrawler(source))
    assert items == [] and errors == []


async def test_unknown_mime_types_are_not_yielded(source):
    marked = source.add_folder(ROOT, "marked")
    source.add_file(marked, "clip.mov", b"m", mime_type="video/quicktime")
    source.add_file(marked, "anim.gif", b"g", mime_type="image/gif")

    items, _ = await collect(ImageCrawler(source))
    assert items == []


async def test_closing_the_stream_stops_producers(source):
    marked = source.add_folder(ROOT, "marked")
    for n in range(50):
        folder = source.add_folder(marked, f"f{n}")
        for m in range(5):
            source.add_file(folder, f"{n}-{m}.jpg", b"x")

    crawler = ImageCrawler(source)
    stream = crawler.crawl(FolderRef(id=ROOT, name=ROOT))
    first = await stream.__anext__()
    assert isinstance(first, SourceItem)
    await stream.aclose()

    # Outstanding walkers observe the closed channel and finish
    for _ in range(200):
        if not crawler._tasks:
            break
        await asyncio.sleep(0)
    assert not crawler._tasks
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()


def test_channel_rejects_sends_after_close():
    channel = ItemChannel()
    channel.add_producer()
    assert channel.send(MissingRequiredFieldException("id"))
    channel.close()
    assert channel.closed
    assert not channel.send(MissingRequiredFieldException("id"))
