"""Backup vaults, protected items and last-day job outcomes."""

import asyncio
from typing import Optional

from src.domain.models import BackupStatus, BackupSummaryCounts, BackupVault

from .base import SourceContext

SUCCEEDED_STATES = {"completed", "completedwithwarnings"}
FAILED_STATES = {"failed", "cancelled"}


def _scoped(table: str, resource_group: Optional[str]) -> str:
    if resource_group:
        return f"{table}\n| where resourceGroup =~ '{resource_group}'"
    return table


def vaults_query(resource_group: Optional[str] = None) -> str:
    return (
        f"{_scoped('Resources', resource_group)}\n"
        "| where type =~ 'microsoft.recoveryservices/vaults' "
        "or type =~ 'microsoft.dataprotection/backupvaults'\n"
        "| project name, type, location, resourceGroup"
    )


def protected_items_query(resource_group: Optional[str] = None) -> str:
    return (
        f"{_scoped('RecoveryServicesResources', resource_group)}\n"
        "| where type =~ "
        "'microsoft.recoveryservices/vaults/backupfabrics/"
        "protectioncontainers/protecteditems'\n"
        "| summarize total = count()"
    )


def jobs_query(resource_group: Optional[str] = None) -> str:
    return (
        f"{_scoped('RecoveryServicesResources', resource_group)}\n"
        "| where type =~ 'microsoft.recoveryservices/vaults/backupjobs'\n"
        "| where todatetime(properties.startTime) > ago(1d)\n"
        "| summarize total = count() by status = tostring(properties.status)"
    )


async def fetch_backup_status(ctx: SourceContext) -> BackupStatus:
    subscriptions = [ctx.subscription_id]
    vault_rows, item_rows, job_rows = await asyncio.gather(
        ctx.arm.resource_graph(vaults_query(ctx.resource_group), subscriptions),
        ctx.arm.resource_graph(
            protected_items_query(ctx.resource_group), subscriptions
        ),
        ctx.arm.resource_graph(jobs_query(ctx.resource_group), subscriptions),
    )

    vaults = [
        BackupVault(
            name=row.get("name", ""),
            type=row.get("type"),
            location=row.get("location"),
            resource_group=row.get("resourceGroup"),
        )
        for row in vault_rows
    ]
    successful = failed = 0
    for row in job_rows:
        status = str(row.get("status") or "").lower()
        if status in SUCCEEDED_STATES:
            successful += int(row.get("total") or 0)
        elif status in FAILED_STATES:
            failed += int(row.get("total") or 0)

    return BackupStatus(
        vaults=vaults,
        summary=BackupSummaryCounts(
            total_vaults=len(vaults),
            total_protected_items=sum(int(r.get("total") or 0) for r in item_rows),
            successful_jobs=successful,
            failed_jobs=failed,
            status="Configured" if vaults else "Not Configured",
        ),
    )


def fallback() -> BackupStatus:
    return BackupStatus(source="fallback")
