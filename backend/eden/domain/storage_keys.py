"""Logical keys of the persisted collections."""

TASKS = "tasks"
NOTES = "notes"
SERVICES = "homelab_services"
NETWORK_DEVICES = "homelab_network_devices"
AUTOMATION_RULES = "homelab_automation_rules"
ERROR_LOG = "error_log"

BACKUP_SUFFIX = "_backup"

COLLECTION_KEYS = (TASKS, NOTES, SERVICES, NETWORK_DEVICES, AUTOMATION_RULES)


def backup_key(key: str) -> str:
    return f"{key}{BACKUP_SUFFIX}"
