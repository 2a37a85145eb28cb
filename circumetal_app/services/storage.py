import uuid
import json
import logging
from datetime import datetime, timezone

from databricks.sql import connect
from databricks.sdk.core import Config, oauth_service_principal

from ..config import Settings

logger = logging.getLogger(__name__)


def _serialize_json(value):
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)


def report_name(params: dict) -> str:
    name = params.get("name") or params.get("reportName")
    if isinstance(name, str) and name.strip():
        return name.strip()
    metal = params.get("metalType")
    if isinstance(metal, str) and metal.strip():
        return f"{metal.strip()} LCA Report"
    return "LCA Report"


class DatabricksReportStorage:
    """
    Stores generated LCA reports in a Unity Catalog Delta table.

    Implements the ReportSink capability used by the orchestrator; callers
    treat any exception from save_report() as a non-fatal warning.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def _reports(self):
        return f"{self.settings.catalog}.lca.reports"

    def _connect(self):
        host = self.settings.databricks_host.replace("https://", "")
        if self.settings.api_key:
            return connect(
                server_hostname=host,
                http_path=self.settings.http_path,
                access_token=self.settings.api_key,
                catalog=self.settings.catalog,
            )

        cfg = Config(
            host=f"https://{host}",
            client_id=self.settings.client_id,
            client_secret=self.settings.client_secret,
        )

        def credential_provider():
            return oauth_service_principal(cfg)

        return connect(
            server_hostname=host,
            http_path=self.settings.http_path,
            credentials_provider=credential_provider,
            catalog=self.settings.catalog,
        )

    def save_report(self, params: dict, report: dict) -> str:
        report_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        metal_type = params.get("metalType") if isinstance(params.get("metalType"), str) else None

        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"INSERT INTO {self._reports} "
                    "(id, name, metal_type, form_data, insights, status, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        report_id,
                        report_name(params),
                        metal_type,
                        _serialize_json(params),
                        _serialize_json(report),
                        "completed",
                        now,
                        now,
                    ),
                )
        logger.info("Report storage: Saved report %s to %s", report_id, self._reports)
        return report_id
