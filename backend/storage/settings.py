from typing import Literal, Optional

from pydantic import BaseModel

from storage.kv import KeyValueStore

NOTIFICATIONS_KEY = "settings_notifications"
FREQUENCY_KEY = "settings_frequency"

ReminderFrequency = Literal["daily", "weekly"]


class UserSettings(BaseModel):
    notifications_enabled: bool = True
    reminder_frequency: ReminderFrequency = "daily"


class UserSettingsUpdate(BaseModel):
    notifications_enabled: Optional[bool] = None
    reminder_frequency: Optional[ReminderFrequency] = None


class SettingsStore:
    """Preferences kept under their own keys, beside the inventory document."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def load(self) -> UserSettings:
        out = UserSettings()
        notifications = self.kv.get_item(NOTIFICATIONS_KEY)
        if notifications is not None:
            out.notifications_enabled = notifications == "true"
        frequency = self.kv.get_item(FREQUENCY_KEY)
        if frequency in ("daily", "weekly"):
            out.reminder_frequency = frequency
        return out

    def save(self, update: UserSettingsUpdate) -> UserSettings:
        data = update.model_dump(exclude_unset=True)
        if data.get("notifications_enabled") is not None:
            self.kv.set_item(NOTIFICATIONS_KEY, "true" if data["notifications_enabled"] else "false")
        if data.get("reminder_frequency") is not None:
            self.kv.set_item(FREQUENCY_KEY, data["reminder_frequency"])
        return self.load()
