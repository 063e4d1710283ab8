from __future__ import annotations

from pipelines.runner import RunContext
from ports.repos import StoreRepoPort


class MergeRecords:
    def __init__(self, repo: StoreRepoPort) -> None:
        self.repo = repo

    def run(self, ctx: RunContext) -> RunContext:
        if ctx.record is None:
            return ctx
        result = self.repo.merge(ctx.record, ctx.related_records)
        ctx.meta["merge"] = result
        ctx.meta["inserted"] = result.inserted
        ctx.meta["updated"] = result.updated
        ctx.meta["related_inserted"] = result.related_inserted
        return ctx
