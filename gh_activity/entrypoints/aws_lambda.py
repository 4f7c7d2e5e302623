"""AWS Lambda handler for GitHub activity syncs.

Triggered by EventBridge (scheduled) or invoked directly.

Event format:
  {}                                  -> configured or discovered organizations
  {"orgs": ["acme", "globex"]}
  {"orgs": ["acme"], "raw": true}     -> normalized records instead of roll-ups
"""

from __future__ import annotations

import json
import logging
import os

from gh_activity.config import load_config
from gh_activity.db import Database
from gh_activity.errors import SyncFailed
from gh_activity.logging_config import configure_logging
from gh_activity.orchestrator import run_sync
from gh_activity.search import SearchIndexManager

logger = logging.getLogger("gh_activity.lambda")

_indexes_ready = False


def handler(event: dict, context) -> dict:
    """Lambda entry point."""
    global _indexes_ready
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    orgs = event.get("orgs") or None
    logger.info("Lambda invoked for orgs=%s", orgs)

    config = load_config()
    db = Database(config.database)

    try:
        if not _indexes_ready:
            SearchIndexManager(db).ensure_indexes()
            _indexes_ready = True

        if event.get("raw"):
            records = run_sync(config, db, org_logins=orgs, raw=True)
            return {"statusCode": 200, "body": json.dumps({"records": records}, default=str)}

        result = run_sync(config, db, org_logins=orgs)
        body = result.to_dict()
        return {
            "statusCode": 207 if result.partial else 200,
            "body": json.dumps(body, default=str),
        }
    except SyncFailed as exc:
        logger.error("Sync obtained no results: %s", exc)
        return {
            "statusCode": 502,
            "body": json.dumps({"error": str(exc), "failures": [f.to_dict() for f in exc.failures]}),
        }
    except Exception as exc:
        logger.error("Sync failed: %s", exc, exc_info=True)
        return {
            "statusCode": 500,
            "body": json.dumps({"error": str(exc)}),
        }
    finally:
        db.close()
