def activity_to_dict(record):
    return {
        "id": record.id,
        "userId": record.user_id,
        "action": record.action,
        "timestamp": record.timestamp.isoformat() if record.timestamp else None,
        "details": record.details,
    }

def ledger_to_dict(entry):
    return {
        "day": entry.day,
        "checkedIn": bool(entry.checked_in),
        "streak": entry.streak or 0,
        "checkedInAt": entry.checked_in_at.isoformat() if entry.checked_in_at else None,
    }

def item_to_dict(item):
    return {
        "actionId": item.action_id,
        "done": bool(item.done),
    }

def task_to_dict(task):
    return {
        "actionId": task.action_id,
        "label": task.label,
    }
