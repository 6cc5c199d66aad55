"""Stock avatar catalog and avatar display resolution."""
from dataclasses import dataclass
from typing import Literal

# Stock robot avatars offered by the avatar picker, in display order
AVATAR_LABELS: dict[str, str] = {
    "robot1": "Robô Vermelho",
    "robot2": "Robô Azul",
    "robot3": "Robô Verde",
    "robot4": "Robô Roxo",
    "robot5": "Robô Laranja",
    "robot6": "Robô Amarelo",
    "robot7": "Robô Índigo",
    "robot8": "Robô Rosa",
    "robot9": "Robô Ciano",
    "robot10": "Robô Esmeralda",
    "robot11": "Robô Violeta",
    "robot12": "Robô Cinza",
    "robot13": "Robô Sky",
    "robot14": "Robô Teal",
    "robot15": "Robô Fúcsia",
    "robot16": "Robô Slate",
}

DEFAULT_AVATAR_ID = "robot1"


def is_stock_avatar(avatar_id: str | None) -> bool:
    """Return True if ``avatar_id`` names an avatar from the catalog."""
    return avatar_id in AVATAR_LABELS


@dataclass(frozen=True)
class AvatarDisplay:
    """
    What a surface should draw for the user's avatar.

    ``source`` is the uploaded image URL for custom avatars, or the stock
    avatar id for catalog avatars.
    """

    kind: Literal["custom", "stock"]
    source: str


def resolve_avatar(avatar_id: str | None, custom_avatar_url: str | None) -> AvatarDisplay:
    """
    Resolve which avatar to show.

    A custom photo always takes precedence. Unknown or missing stock ids fall
    back to the first catalog avatar.
    """
    if custom_avatar_url:
        return AvatarDisplay("custom", custom_avatar_url)
    if avatar_id and is_stock_avatar(avatar_id):
        return AvatarDisplay("stock", avatar_id)
    return AvatarDisplay("stock", DEFAULT_AVATAR_ID)
