"""
Leveled List Patcher

Runs the per-record resolution over every leveled item in a load order:
1. Resolving every version of each record from the record index
2. Building its dependency graph and selecting the extent versions
3. Merging records with more than one extent version
4. Splitting oversized results into sublists allocated in the patch plugin

Records are independent of each other, so steps 1-3 can run on a thread
pool. The record index and load order are only read. Step 4 hands out new
keys and runs in record order, so a run's output does not depend on thread
scheduling.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Tuple

from leveledresolver.config import ResolverConfig, get_config
from leveledresolver.errors import ResolverError
from leveledresolver.records import EntityKey, RecordVersion, SourceId
from leveledresolver.report import PatchReport, RecordFailure
from leveledresolver.resolver.graph import LeveledItemGraph, MergedRecord
from leveledresolver.resolver.sublists import KeyAllocator, SublistSplitter
from leveledresolver.sources import LoadOrder, RecordIndex

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[EntityKey, int, int], None]


class _Outcome:
    """What a worker produced for one record."""
    __slots__ = ("record", "extent_sources", "trace", "failure")

    def __init__(
        self,
        record: Optional[RecordVersion] = None,
        extent_sources: Tuple[SourceId, ...] = (),
        trace: Optional[List[str]] = None,
        failure: Optional[RecordFailure] = None,
    ):
        self.record = record
        self.extent_sources = extent_sources
        self.trace = trace or []
        self.failure = failure


class LeveledListPatcher:
    """
    Resolves leveled item conflicts for a whole load order.

    Usage:
        patcher = LeveledListPatcher(index, load_order)
        report = patcher.run()
        for record in report.records_to_write():
            ...
    """

    def __init__(
        self,
        index: RecordIndex,
        load_order: LoadOrder,
        config: Optional[ResolverConfig] = None,
    ):
        self.index = index
        self.load_order = load_order
        self.config = config if config is not None else get_config()
        self.sink = SourceId(self.config.sink)
        self.allocator = KeyAllocator(self.sink, self.config.first_form_id)
        self.splitter = SublistSplitter(
            self.allocator,
            max_entries=self.config.max_entries,
            name_format=self.config.sublist_name_format,
            entry_level=self.config.sublist_entry_level,
            entry_count=self.config.sublist_entry_count,
        )

    def graph_for(self, entity_key: EntityKey) -> LeveledItemGraph:
        return LeveledItemGraph.from_index(self.index, self.load_order, entity_key, self.sink)

    def resolve(self, entity_key: EntityKey) -> Optional[MergedRecord]:
        """
        Merge one leveled item.

        Returns None when only one version is in effect and the config only
        asks for conflicting records. Resolver errors propagate.
        """
        graph = self.graph_for(entity_key)
        if self.config.only_conflicts and not graph.needs_merge:
            return None
        return graph.merge(self.splitter)

    def _merge(self, entity_key: EntityKey) -> _Outcome:
        try:
            graph = self.graph_for(entity_key)
            trace = graph.trace() if self.config.trace_paths else []
            if self.config.only_conflicts and not graph.needs_merge:
                return _Outcome(trace=trace)
            return _Outcome(graph.merged_record(), graph.extent_sources, trace)
        except ResolverError as e:
            logger.warning(f"Skipping {entity_key}: {e}")
            return _Outcome(failure=RecordFailure(entity_key, type(e).__name__, str(e)))

    def run(
        self,
        entity_keys: Optional[Iterable[EntityKey]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> PatchReport:
        """
        Resolve many leveled items.

        Args:
            entity_keys: Records to resolve (every record in the index if None)
            progress_callback: Optional callback(entity_key, index, total)

        Returns:
            PatchReport with merged records in ``entity_keys`` order
        """
        keys = list(entity_keys) if entity_keys is not None else self.index.entity_keys()
        report = PatchReport(sink=str(self.sink))

        logger.info(f"Resolving {len(keys)} leveled lists into {self.sink} with {self.config.workers} worker(s)")

        if self.config.workers > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                self._collect(report, keys, executor.map(self._merge, keys), progress_callback)
        else:
            self._collect(report, keys, map(self._merge, keys), progress_callback)

        logger.info(f"Patch built: {report.merged_count} merged, {report.sublist_count} sublists, "
                    f"{len(report.skipped)} skipped, {report.failure_count} failures")

        return report

    def _collect(
        self,
        report: PatchReport,
        keys: List[EntityKey],
        outcomes: Iterable[_Outcome],
        progress_callback: Optional[ProgressCallback],
    ) -> None:
        total = len(keys)
        for i, (key, outcome) in enumerate(zip(keys, outcomes)):
            if progress_callback:
                progress_callback(key, i, total)
            if outcome.trace:
                report.traces[key] = outcome.trace
            if outcome.failure is not None:
                report.failures.append(outcome.failure)
            elif outcome.record is None:
                report.skipped.append(key)
            else:
                split = self.splitter.split(outcome.record, editor_id=outcome.record.editor_id)
                report.merged[key] = MergedRecord(
                    record=split.record,
                    sublists=split.sublists,
                    extent_sources=outcome.extent_sources,
                )
