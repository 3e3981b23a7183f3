"""Example: stage and save detail-page changes through the service layer (no Flask).

Controllers are a thin layer; the staging buffer and the save pass live in services.
"""

import importlib
import sys

from config import get_settings_module

from src.care_office.care_office.container import build_container
from src.care_office.care_office.core.exceptions import DomainError
from src.care_office.care_office.notifications.toasts import ToastCollector
from src.care_office.care_office.pages.editor import SectionEditor


def main(staff_id: str):
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, storage_root=settings.STORAGE_ROOT)

    page = container.pages.open("staff", staff_id)
    SectionEditor(page, "staff_compliance").add({"compliance_name": "First Aid", "expiry_date": "2026-12-31"})
    page.set_fields({"phone": "0400 000 000"})
    print("dirty:", page.is_dirty, "pending:", page.pending.count())

    toasts = ToastCollector()
    try:
        outcome = container.orchestrator.save(page, notifier=toasts, user_name="example script")
        print("saved:", outcome)
    except DomainError as e:
        print("save failed:", e)
    for toast in toasts.toasts:
        print(toast.as_dict())
    container.pages.close(page.token)


if __name__ == "__main__":
    main(sys.argv[1])
