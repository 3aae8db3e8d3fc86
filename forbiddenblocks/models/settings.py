"""Global client settings models."""

from pydantic import BaseModel, ConfigDict, Field

KEY_CATEGORY = "category.forbiddenblocks.keys"


class KeyBinding(BaseModel):
    """A key binding as shown in the settings screen."""

    model_config = ConfigDict(frozen=True)

    translation_key: str = Field(..., description="Translation key of the binding's label")
    key: str = Field(..., description="Bound key, e.g. key.keyboard.o")
    category: str = Field(default=KEY_CATEGORY)


def _default_forbid_key() -> KeyBinding:
    return KeyBinding(translation_key="key.forbiddenblocks.forbid", key="key.keyboard.o")


def _default_toggle_messages_key() -> KeyBinding:
    return KeyBinding(translation_key="key.forbiddenblocks.toggle_messages", key="key.keyboard.m")


class ClientSettings(BaseModel):
    """Process-wide settings, independent of the current world or server."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    show_messages: bool = Field(default=True, alias="showMessages")
    forbid_key: KeyBinding = Field(default_factory=_default_forbid_key, alias="forbidKey")
    toggle_messages_key: KeyBinding = Field(default_factory=_default_toggle_messages_key, alias="toggleMessagesKey")

    def key_bindings(self) -> dict[str, KeyBinding]:
        return {"forbid": self.forbid_key, "toggle_messages": self.toggle_messages_key}
