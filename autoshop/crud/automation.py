# autoshop/crud/automation.py
from sqlalchemy.orm import Session
from autoshop.models.automation import AutomationSettingsRecord

def get_settings(db: Session, user_id: int) -> AutomationSettingsRecord | None:
    return db.get(AutomationSettingsRecord, user_id)

def upsert_settings(db: Session, user_id: int, values: dict) -> AutomationSettingsRecord:
    record = db.get(AutomationSettingsRecord, user_id)
    if record is None:
        record = AutomationSettingsRecord(user_id=user_id)
        db.add(record)
    for key, value in values.items():
        setattr(record, key, value)
    db.commit()
    db.refresh(record)
    return record
