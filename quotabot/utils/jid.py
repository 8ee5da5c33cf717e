"""Chat address helpers."""

from __future__ import annotations


def canonical_user_id(raw: str, domain: str) -> str:
    """Map any address of a user to one canonical id.

    ``"6281:12@s.whatsapp.net"`` and ``"6281"`` both become
    ``"6281@s.whatsapp.net"``; the ``:12`` device qualifier is dropped.
    """

    local = (raw or "").strip().split("@", 1)[0].split(":", 1)[0]
    if not local:
        raise ValueError(f"invalid chat address: {raw!r}")
    return f"{local}@{domain}"


def is_group_chat(chat_id: str, group_domain: str) -> bool:
    return bool(chat_id) and chat_id.endswith(f"@{group_domain}")


def local_part(address: str) -> str:
    return address.split("@", 1)[0]


__all__ = ["canonical_user_id", "is_group_chat", "local_part"]
