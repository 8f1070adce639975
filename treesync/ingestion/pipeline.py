"""
Main ingestion pipeline: crawl, convert, extract metadata, upload.
"""

import asyncio
import time
import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from loguru import logger

from .core import FolderRef, ItemContext, ProcessedRecord, SourceItem, ConvertedArtifact
from .crawler import ImageCrawler
from .geojson import build_feature_collection, serialize_feature_collection
from .processing import ImageConverter, extract_metadata, supported_mime_types
from .storage import IdempotentUploader, ArtifactSize
from ..config.settings import PipelineConfig, TreeSyncConfig
from ..exceptions import TreeSyncException, PipelineException
from ..providers.base import SourceProvider, StorageProvider
from ..utils.error_handler import log_exceptions


@dataclass
class RunStats:
    """Counters for one run, reported in the summary log."""
    crawl_errors: int = 0
    admitted: int = 0
    download_failures: int = 0
    metadata_failures: int = 0
    conversion_failures: int = 0
    upload_failures: int = 0
    unexpected_failures: int = 0
    duplicates: int = 0
    dropped: int = 0
    processed: int = 0
    in_flight: int = 0
    max_in_flight: int = 0


class IngestionPipeline:
    """
    Orchestrates the crawl and the per-image processing chain.

    Each image goes through download -> (convert || extract metadata) ->
    (upload preview || upload full size). At most `concurrency` images are
    in that chain at once. CPU-bound steps run on a worker pool so the event
    loop keeps serving I/O. Failures drop the image and never affect others.
    """

    def __init__(
        self,
        source: SourceProvider,
        storage: StorageProvider,
        root_folder: str,
        config: Optional[PipelineConfig] = None,
        converter: Optional[ImageConverter] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Initialize the ingestion pipeline.

        Args:
            source: Provider the images are listed and downloaded from
            storage: Provider the renditions and GeoJSON are written to
            root_folder: Folder id of the crawl root on the source
            config: Optional pipeline configuration
            converter: Optional converter (defaults to one built from config)
            executor: Optional worker pool for CPU-bound steps
        """
        self.source = source
        self.storage = storage
        self.root_folder = root_folder
        self.config = config or PipelineConfig()
        self.converter = converter or ImageConverter(
            preview_width=self.config.preview_width,
            quality=self.config.webp_quality,
        )
        self.uploader = IdempotentUploader(storage)
        self.crawler = ImageCrawler(source, supported_mime_types())
        self.run_id = uuid.uuid4().hex[:12]
        self.stats = RunStats()

        self._executor = executor
        self._owns_executor = executor is None

    async def _download(self, item: SourceItem, log) -> Optional[bytes]:
        start = time.perf_counter()
        try:
            data = await self.source.download(item.id)
        except TreeSyncException as e:
            self.stats.download_failures += 1
            log.error(f"Error downloading image: {e}")
            return None
        log.info("Downloaded image", bytes=len(data), duration=round(time.perf_counter() - start, 3))
        return data

    async def _transform(self, item: SourceItem, data: bytes, log) -> Optional[tuple]:
        loop = asyncio.get_running_loop()
        start = time.perf_counter()

        # Both steps are pure; they share the downloaded bytes read-only
        metadata_future = loop.run_in_executor(self._executor, extract_metadata, data)
        convert_future = loop.run_in_executor(self._executor, self.converter.convert, item.format, data)
        metadata, converted = await asyncio.gather(metadata_future, convert_future, return_exceptions=True)

        failed = False
        if isinstance(metadata, BaseException):
            self.stats.metadata_failures += 1
            log.error(f"Error extracting metadata from image: {metadata}")
            failed = True
        if isinstance(converted, BaseException):
            self.stats.conversion_failures += 1
            log.error(f"Error converting image to webp: {converted}")
            failed = True
        for result in (metadata, converted):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
        if failed:
            return None

        location, timestamp = metadata
        log.info(
            "Finished processing image",
            lat=location.lat,
            lon=location.lon,
            timestamp=timestamp.isoformat(),
            webp_small=len(converted.preview),
            webp_large=len(converted.full),
            duration=round(time.perf_counter() - start, 3),
        )
        return location, timestamp, converted

    async def _upload(self, item: SourceItem, converted: ConvertedArtifact, log) -> bool:
        start = time.perf_counter()
        cache_control = self.config.image_cache_control
        results = await asyncio.gather(
            self.uploader.upload_image(item.id, ArtifactSize.SMALL, converted.preview, cache_control, log=log),
            self.uploader.upload_image(item.id, ArtifactSize.LARGE, converted.full, cache_control, log=log),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        for error in errors:
            if not isinstance(error, Exception):
                raise error
        if errors:
            self.stats.upload_failures += 1
            for error in errors:
                log.error(f"Error uploading image: {error}")
            return False

        log.info("Uploaded images", duration=round(time.perf_counter() - start, 3))
        return True

    async def process_item(self, item: SourceItem) -> Optional[ProcessedRecord]:
        """
        Run one image through download, transform and upload.

        Returns:
            ProcessedRecord on success, None if any stage failed
        """
        context = ItemContext(run_id=self.run_id, item=item)

        def log(stage: str):
            return logger.bind(**context.for_stage(stage).as_log_fields())

        data = await self._download(item, log("download"))
        if data is None:
            return None

        transformed = await self._transform(item, data, log("transform"))
        if transformed is None:
            return None
        location, timestamp, converted = transformed
        del data

        if not await self._upload(item, converted, log("upload")):
            return None

        return ProcessedRecord(item=item, location=location, timestamp=timestamp)

    async def _run_admitted(self, item: SourceItem, slots: asyncio.Semaphore,
                            records: Dict[str, ProcessedRecord]) -> None:
        self.stats.in_flight += 1
        self.stats.max_in_flight = max(self.stats.max_in_flight, self.stats.in_flight)
        try:
            record = await self.process_item(item)
        except Exception as e:
            self.stats.unexpected_failures += 1
            logger.bind(run_id=self.run_id, image=item.as_log_fields()).opt(exception=True).error(
                f"Unexpected error processing image: {e}"
            )
            record = None
        finally:
            self.stats.in_flight -= 1
            slots.release()

        if record is None:
            self.stats.dropped += 1
            return
        if item.id in records:
            self.stats.duplicates += 1
            logger.warning("Image already processed in this run, keeping first record", id=item.id)
            return
        records[item.id] = record
        self.stats.processed += 1

    async def process_all(self) -> List[ProcessedRecord]:
        """
        Crawl the source and process every image.

        Returns once the crawl is drained and every admitted image has
        finished, successfully or not.
        """
        slots = asyncio.Semaphore(self.config.concurrency)
        records: Dict[str, ProcessedRecord] = {}
        tasks: Set[asyncio.Task] = set()

        root = FolderRef(id=self.root_folder, name=self.root_folder)
        async with self.crawler.crawl(root) as stream:
            async for result in stream:
                if isinstance(result, Exception):
                    self.stats.crawl_errors += 1
                    logger.error("Error retrieving image: {}", result, run_id=self.run_id)
                    continue

                # Admission waits for a free slot
                await slots.acquire()
                self.stats.admitted += 1
                task = asyncio.create_task(self._run_admitted(result, slots, records))
                tasks.add(task)
                task.add_done_callback(tasks.discard)

        if tasks:
            await asyncio.gather(*tasks)
        return list(records.values())

    async def upload_geojson(self, records: List[ProcessedRecord]) -> None:
        """Upload the aggregate GeoJSON document; failure fails the run."""
        try:
            payload = serialize_feature_collection(build_feature_collection(records))
        except ValueError as e:
            raise PipelineException(
                f"Failed to render {self.config.geojson_path}: {e}",
                error_code="GEOJSON_RENDER_FAILED",
            ) from e
        logger.info("Uploading geojson to output", path=self.config.geojson_path, features=len(records))
        try:
            await self.uploader.upload_json(
                self.config.geojson_path,
                payload,
                self.config.geojson_cache_control,
            )
        except TreeSyncException as e:
            raise PipelineException(
                f"Failed to upload {self.config.geojson_path}: {e}",
                error_code="GEOJSON_UPLOAD_FAILED",
            ) from e

    async def run(self) -> List[ProcessedRecord]:
        """
        Run the complete pipeline.

        Returns:
            The records included in the uploaded GeoJSON document
        """
        start = time.perf_counter()
        logger.info("Starting sync", run_id=self.run_id, root_folder=self.root_folder,
                    concurrency=self.config.concurrency)

        if self._owns_executor:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.cpu_workers,
                thread_name_prefix="treesync-cpu",
            )
        try:
            records = await self.process_all()
        finally:
            if self._owns_executor:
                self._executor.shutdown(wait=True)
                self._executor = None

        await self.upload_geojson(records)

        logger.info(
            "Finished processing images",
            run_id=self.run_id,
            total_trees=len(records),
            crawl_errors=self.stats.crawl_errors,
            dropped=self.stats.dropped,
            download_failures=self.stats.download_failures,
            metadata_failures=self.stats.metadata_failures,
            conversion_failures=self.stats.conversion_failures,
            upload_failures=self.stats.upload_failures,
            duration=round(time.perf_counter() - start, 3),
        )
        return records

    async def __call__(self) -> List[ProcessedRecord]:
        """Allow the pipeline to be called directly."""
        return await self.run()


@log_exceptions(include_traceback=False, custom_message="Sync failed")
async def run_ingestion(config: Optional[TreeSyncConfig] = None) -> List[ProcessedRecord]:
    """
    Convenience function to build providers from configuration and run once.

    Args:
        config: Loaded configuration (defaults to the environment)

    Returns:
        The records included in the uploaded GeoJSON document
    """
    from ..providers import ProviderFactory

    config = config or TreeSyncConfig()
    source = ProviderFactory.create_source_provider(config)
    storage = ProviderFactory.create_storage_provider(config)
    try:
        for provider in (source, storage):
            verify = getattr(provider, "verify", None)
            if verify is not None:
                await verify()

        pipeline = IngestionPipeline(
            source=source,
            storage=storage,
            root_folder=config.source.root_folder,
            config=config.pipeline,
        )
        return await pipeline.run()
    finally:
        await source.close()
        await storage.close()
