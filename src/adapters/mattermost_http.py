"""Mattermost REST v4 message store (no external SDK dependency)."""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from src.adapters.message_store import MessageStoreNotFound, MessageStoreTransportError
from src.models.message import Channel, ChannelMembership, Message, MessagePage, User, from_epoch_millis


def _seg(value: str) -> str:
    return quote(value, safe="")


def parse_post_list(payload: dict[str, Any], channel_id: str) -> MessagePage:
    """Convert a Mattermost PostList into a MessagePage, keeping `order` sequence."""
    order = payload.get("order") or []
    posts = payload.get("posts") or {}
    if not isinstance(order, list) or not isinstance(posts, dict):
        raise MessageStoreTransportError("post list has unexpected shape")

    messages: list[Message] = []
    for post_id in order:
        post = posts.get(post_id)
        # system posts carry no author
        if not isinstance(post, dict) or not post.get("user_id"):
            continue
        if post.get("delete_at"):
            continue
        try:
            messages.append(
                Message(
                    id=str(post.get("id") or post_id),
                    author_id=str(post["user_id"]),
                    channel_id=str(post.get("channel_id") or channel_id),
                    text=str(post.get("message") or ""),
                    created_at=from_epoch_millis(int(post.get("create_at") or 0)),
                )
            )
        except (TypeError, ValueError, OverflowError) as exc:
            raise MessageStoreTransportError(f"malformed post in post list: {post_id}") from exc

    has_next = bool(payload.get("has_next"))
    next_cursor = str(payload.get("next_post_id") or "")
    if has_next and not next_cursor and messages:
        next_cursor = messages[-1].id
    if has_next and not next_cursor:
        raise MessageStoreTransportError("post list reports more pages without a cursor")
    return MessagePage(messages=messages, has_next=has_next, next_cursor=next_cursor)


class MattermostMessageStore:
    def __init__(self, base_url: str, token: str, timeout_seconds: int = 10) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds

    def _request(
        self,
        method: str,
        path: str,
        query: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self._base_url}/api/v4{path}"
        if query:
            url = f"{url}?{urlencode(query)}"
        data = None
        headers = {
            "accept": "application/json",
            "authorization": f"Bearer {self._token}",
        }
        if body is not None:
            data = json.dumps(body, ensure_ascii=True).encode("utf-8")
            headers["content-type"] = "application/json"
        req = Request(url=url, data=data, method=method, headers=headers)

        try:
            with urlopen(req, timeout=self._timeout_seconds) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            if exc.code == 404:
                raise MessageStoreNotFound(f"{method} {path}: not found") from exc
            raise MessageStoreTransportError(f"{method} {path}: HTTP {exc.code}") from exc
        except URLError as exc:
            reason = exc.reason if getattr(exc, "reason", None) else str(exc)
            raise MessageStoreTransportError(f"{method} {path}: connection error: {reason}") from exc
        except OSError as exc:
            raise MessageStoreTransportError(f"{method} {path}: request failed") from exc

        if not raw.strip():
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MessageStoreTransportError(f"{method} {path}: non-JSON response") from exc

    def _request_object(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        payload = self._request(method, path, **kwargs)
        if not isinstance(payload, dict):
            raise MessageStoreTransportError(f"{method} {path}: response must be an object")
        return payload

    def get_channel(self, channel_id: str) -> Channel:
        payload = self._request_object("GET", f"/channels/{_seg(channel_id)}")
        return Channel(
            id=str(payload.get("id") or channel_id),
            team_id=str(payload.get("team_id") or ""),
            name=str(payload.get("name") or ""),
        )

    def get_channel_memberships_for_user(
        self,
        team_id: str,
        user_id: str,
        page: int,
        per_page: int,
    ) -> list[ChannelMembership]:
        payload = self._request(
            "GET",
            f"/users/{_seg(user_id)}/teams/{_seg(team_id)}/channels/members",
            query={"page": page, "per_page": per_page},
        )
        if not isinstance(payload, list):
            raise MessageStoreTransportError("channel members response must be a list")
        out: list[ChannelMembership] = []
        for item in payload:
            if not isinstance(item, dict) or not item.get("channel_id"):
                continue
            out.append(
                ChannelMembership(
                    team_id=team_id,
                    channel_id=str(item["channel_id"]),
                    user_id=str(item.get("user_id") or user_id),
                )
            )
        return out

    def get_messages_since(self, channel_id: str, since_millis: int) -> MessagePage:
        payload = self._request_object(
            "GET",
            f"/channels/{_seg(channel_id)}/posts",
            query={"since": since_millis},
        )
        return parse_post_list(payload, channel_id)

    def get_messages_after(self, channel_id: str, cursor: str, page: int, per_page: int) -> MessagePage:
        payload = self._request_object(
            "GET",
            f"/channels/{_seg(channel_id)}/posts",
            query={"after": cursor, "page": page, "per_page": per_page},
        )
        return parse_post_list(payload, channel_id)

    def get_user(self, user_id: str) -> User:
        payload = self._request_object("GET", f"/users/{_seg(user_id)}")
        return User(
            id=str(payload.get("id") or user_id),
            username=str(payload.get("username") or ""),
            locale=str(payload.get("locale") or ""),
        )

    def send_ephemeral_notice(self, user_id: str, channel_id: str, text: str) -> None:
        self._request(
            "POST",
            "/posts/ephemeral",
            body={"user_id": user_id, "post": {"channel_id": channel_id, "message": text}},
        )
