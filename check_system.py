"""
End-to-end smoke check of the smart toilet health pipeline.

This script checks:
1. Configuration loading and validation
2. Session reconciliation and diagnostics on a sample report tree
3. Transition alerts through the monitoring service
4. Live Firebase access (only when SMART_TOILET_UID is set)

Run with: uv run python check_system.py
"""

import asyncio
import os
from collections.abc import Mapping
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from smart_toilet.config import configure_logging, get_config, validate_config
from smart_toilet.domain.models import Alert, CombinedRecord
from smart_toilet.services.alerts import SessionTracker
from smart_toilet.services.classification import classify_record, overall_status
from smart_toilet.services.health_monitoring import HealthMonitoringService
from smart_toilet.services.reconciler import reconcile_reports

console = Console()

SAMPLE_TREE: dict[str, Any] = {
    "Reports": {
        "2024-05-01": {
            "Hardware_Sessions": {
                "session_0800": {
                    "metadata": {"time": "08:00:00"},
                    "sensorData": {
                        "ph_value_sensor": 6.4,
                        "specific_gravity_sensor": 1.018,
                        "tds_value": 240,
                        "turbidity": 8.2,
                        "ammonia_ppm": 35,
                        "temperature": 36.4,
                        "blood_detected_sensor": False,
                        "leakage_detected": False,
                    },
                },
            },
            "Medical_Sessions": {
                "chem_0802": {
                    "metadata": {"time": "08:02:10"},
                    "Chemistry_Result": {
                        "chem_bilirubin": "neg",
                        "chem_urobilinogen": "norm",
                        "chem_ketones": "neg",
                        "chem_ascorbicAcid": "neg",
                        "chem_glucose": "neg",
                        "chem_protein": 15,
                        "chem_blood": "neg",
                        "chem_nitrite": "neg",
                        "chem_leukocytes": "neg",
                    },
                },
            },
        }
    }
}

FOLLOW_UP_SESSION: dict[str, Any] = {
    "metadata": {"time": "19:30:00"},
    "sensorData": {
        "ph_value_sensor": 8.6,
        "specific_gravity_sensor": 1.034,
        "tds_value": 520,
        "turbidity": 24.0,
        "ammonia_ppm": 40,
        "temperature": 37.6,
        "blood_detected_sensor": False,
        "leakage_detected": False,
    },
}


class SampleSource:
    """Serves a fixed report tree."""

    def __init__(self, tree: Mapping[str, Any]) -> None:
        self.tree = tree

    async def fetch_user_tree(self, user_id: str) -> Mapping[str, Any] | None:
        return self.tree


class ConsoleRecordLog:
    def __init__(self) -> None:
        self.records: list[CombinedRecord] = []

    async def append(self, user_id: str, record: CombinedRecord) -> None:
        self.records.append(record)

    async def list_records(self, user_id: str) -> list[dict[str, Any]]:
        return [record.to_history_document() for record in self.records]


class ConsoleNotificationSink:
    async def notify(self, user_id: str, alert: Alert) -> None:
        style = "red" if alert.severity == "Warning" else "yellow"
        console.print(f"🔔 {alert.severity}: {alert.message}", style=style)


def check_configuration() -> bool:
    """Check configuration loading and validation."""

    console.print(Panel("🔧 Checking Configuration", style="blue"))

    try:
        validate_config()
        config = get_config()
        configure_logging(config.logging)
        console.print(f"Database: {config.firebase.database_url}", style="green")
        return True
    except Exception as e:
        console.print(f"❌ Configuration invalid: {e}", style="red")
        console.print("Set FIREBASE_DATABASE_URL in .env", style="yellow")
        return False


def check_reconciliation() -> bool:
    """Reconcile the sample tree and print its diagnostics."""

    console.print(Panel("🧪 Checking Reconciliation and Diagnostics", style="blue"))

    records = reconcile_reports(SAMPLE_TREE["Reports"])
    if len(records) != 1 or not records[0].has_chemistry:
        console.print(f"❌ Expected one paired record, got {records}", style="red")
        return False

    verdicts = classify_record(records[0])
    table = Table(title=f"Record {records[0].id}")
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="white")
    table.add_column("Status", style="white")
    table.add_column("Reference", style="dim")
    for verdict in verdicts:
        table.add_row(
            verdict.label, verdict.display_value, verdict.status.value, verdict.reference_range
        )
    console.print(table)

    status = overall_status(verdicts)
    console.print(f"Overall status: {status}", style="green" if status == "Normal" else "yellow")
    return status == "Normal"


async def check_monitoring() -> bool:
    """Feed two snapshots through the monitoring service and expect alerts on the second."""

    console.print(Panel("🔄 Checking Monitoring Pipeline", style="blue"))

    source = SampleSource(SAMPLE_TREE)
    record_log = ConsoleRecordLog()
    service = HealthMonitoringService(
        source,
        record_log,
        ConsoleNotificationSink(),
        tracker=SessionTracker(),
        config=get_config(),
    )

    first = (await service.refresh("demo-user")).unwrap()
    hardware = SAMPLE_TREE["Reports"]["2024-05-01"]["Hardware_Sessions"]
    source.tree = {
        "Reports": {
            "2024-05-01": {
                **SAMPLE_TREE["Reports"]["2024-05-01"],
                "Hardware_Sessions": {**hardware, "session_1930": FOLLOW_UP_SESSION},
            }
        }
    }
    second = (await service.refresh("demo-user")).unwrap()

    if first is None or second is None:
        console.print("❌ Monitoring service skipped a new session", style="red")
        return False

    summary = Table(title="Monitoring Summary")
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", style="white")
    summary.add_row("History Records", str(len(record_log.records)))
    summary.add_row("Latest Status", second.overall_status)
    summary.add_row("Alerts Raised", str(len(second.alerts)))
    console.print(summary)

    return len(record_log.records) == 2 and len(second.alerts) > 0


async def check_firebase() -> bool:
    """Fetch the latest record of SMART_TOILET_UID from Firebase."""

    console.print(Panel("🔥 Checking Firebase Access", style="blue"))

    user_id = os.getenv("SMART_TOILET_UID")
    if not user_id:
        console.print("Skipped: SMART_TOILET_UID is not set", style="yellow")
        return True

    from smart_toilet.adapters.firebase import (
        FirebaseReportSource,
        FirestoreNotificationLog,
        FirestoreRecordLog,
        initialize_firebase,
    )

    config = get_config()
    initialize_firebase(config.firebase)
    service = HealthMonitoringService(
        FirebaseReportSource(config.firebase),
        FirestoreRecordLog(config.firebase),
        FirestoreNotificationLog(config.firebase),
        config=config,
    )

    result = await service.records(user_id)
    if result.is_err():
        console.print(f"❌ Firebase unreachable: {result.unwrap_err()}", style="red")
        return False

    records = result.unwrap()
    console.print(
        f"✅ {len(records)} records in the {config.monitoring.default_time_range} window",
        style="green",
    )
    return True


async def run_all_checks() -> None:
    """Run all system checks."""

    console.print(Panel("🚽 Smart Toilet Health Monitor - System Checks", style="bold blue"))

    checks = [
        ("Configuration", check_configuration),
        ("Reconciliation", check_reconciliation),
        ("Monitoring", check_monitoring),
        ("Firebase", check_firebase),
    ]

    results = []

    for check_name, check_func in checks:
        console.print(f"\n{'=' * 60}")
        try:
            result = check_func()
            if asyncio.iscoroutine(result):
                result = await result
            results.append((check_name, result))
        except KeyboardInterrupt:
            console.print("\n⏹️  Checks interrupted by user", style="yellow")
            break
        except Exception as e:
            console.print(f"❌ {check_name} failed with exception: {e}", style="red")
            results.append((check_name, False))

    console.print(f"\n{'=' * 60}")
    console.print(Panel("📋 Check Results Summary", style="bold"))

    summary_table = Table()
    summary_table.add_column("Check", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for check_name, result in results:
        if result:
            summary_table.add_row(check_name, "✅ PASSED")
            passed += 1
        else:
            summary_table.add_row(check_name, "❌ FAILED")

    console.print(summary_table)
    console.print(f"\n🎯 Results: {passed}/{len(results)} checks passed")


if __name__ == "__main__":
    try:
        asyncio.run(run_all_checks())
    except KeyboardInterrupt:
        console.print("\n👋 Checks stopped by user", style="yellow")
