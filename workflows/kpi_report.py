"""
Prefect Workflow Orchestration - Batch KPI Reports

Computes dashboard reports for every business in a catalog snapshot and
writes one JSON document per business to the reports directory.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
import json

from prefect import flow, get_run_logger, task

from portal_analytics.analytics import AnalyticsError, DashboardService
from portal_analytics.config import get_settings
from portal_analytics.ingestion import FileCatalogSource, FileOrderSource

settings = get_settings()


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="compute_business_report",
    description="Compute the dashboard report for one business",
)
async def compute_business_report(
    service: DashboardService,
    business_id: str,
    role: Optional[str],
    now: datetime,
) -> dict:
    """Dashboard report as a JSON-ready dict"""
    report = await service.dashboard(business_id, role=role, now=now)
    return report.model_dump(mode="json")


@task(
    name="write_report",
    description="Write a report document to the reports directory",
    retries=2,
    retry_delay_seconds=5,
)
def write_report(reports_dir: str, business_id: str, payload: dict) -> str:
    """Write one business report; returns the file path"""
    target = Path(reports_dir)
    target.mkdir(parents=True, exist_ok=True)
    path = target / f"{business_id}.json"
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    return str(path)


@task(
    name="send_alert",
    description="Send alert notification",
)
def send_alert(alert_type: str, message: str, severity: str = "info") -> None:
    logger = get_run_logger()
    logger.warning(f"[{severity.upper()}] {alert_type}: {message}")


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="kpi_report",
    description="Batch dashboard reports from catalog and order snapshots",
)
async def kpi_report(
    snapshot_dir: Optional[str] = None,
    reports_dir: Optional[str] = None,
    business_ids: Optional[List[str]] = None,
    role: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Batch KPI report pipeline.

    Steps:
    1. Load and validate catalog and order snapshots
    2. Compute one dashboard report per business, all at the same instant
    3. Write one JSON document per business

    A business whose report fails is recorded and skipped; snapshot
    validation failures abort the whole run.
    """
    logger = get_run_logger()

    snapshot_dir = Path(snapshot_dir or settings.data_lake.snapshot_path)
    reports_dir = reports_dir or settings.data_lake.reports_path
    now = now or datetime.now(timezone.utc)

    catalog_source = FileCatalogSource(snapshot_dir / settings.data_lake.catalog_file)
    order_source = FileOrderSource(snapshot_dir / settings.data_lake.orders_file)
    service = DashboardService(catalog_source, order_source, settings.analytics)

    # Read and validate both snapshots up front
    owners = catalog_source.all_business_ids()
    order_count = len(order_source.records())

    business_ids = business_ids or owners
    logger.info(f"Loaded {order_count} orders")
    logger.info(f"Starting KPI reports for {len(business_ids)} businesses as of {now.isoformat()}")

    results = {
        "as_of": now.isoformat(),
        "reports": {},
        "failed": {},
    }

    for business_id in business_ids:
        try:
            payload = await compute_business_report(service, business_id, role, now)
        except AnalyticsError as e:
            logger.error(f"Report failed for {business_id}: {e}")
            results["failed"][business_id] = str(e)
            continue
        results["reports"][business_id] = write_report(reports_dir, business_id, payload)

    if results["failed"]:
        send_alert(
            alert_type="KPI Report Incomplete",
            message=f"{len(results['failed'])} of {len(business_ids)} reports failed",
            severity="warning",
        )
        results["status"] = "partial"
    else:
        results["status"] = "success"

    logger.info(f"KPI reports complete: {len(results['reports'])} written")
    return results


if __name__ == "__main__":
    import asyncio

    asyncio.run(kpi_report())
