"""Run the daily visa timeline alert sweep.

Safe to schedule more than once a day: alerts already sent today are skipped.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from services.alerts import process_visa_timeline_alerts


def main() -> None:
    app = create_app()
    with app.app_context():
        report = process_visa_timeline_alerts(app.extensions["notification_dispatcher"])
        print(json.dumps(report.to_dict(), indent=2))


if __name__ == "__main__":
    main()
