from __future__ import annotations

import re

import pytest

from chat_indexer.document import LiveDocument
from chat_indexer.platforms import (
    GENERIC,
    LocatorProfile,
    PlatformRule,
    ProfileRegistry,
    build_profile_registry,
    host_identity,
    is_ready,
    resolve,
)


def test_builtin_registry_order_is_deterministic() -> None:
    registry = build_profile_registry()

    assert registry.names() == (
        "chatgpt",
        "gemini",
        "deepseek",
        "grok",
        "claude",
        "perplexity",
        "generic",
    )


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://chat.openai.com/c/1", "chatgpt"),
        ("https://chatgpt.com/", "chatgpt"),
        ("https://gemini.google.com/app", "gemini"),
        ("https://bard.google.com/chat", "gemini"),
        ("https://chat.deepseek.com/a/chat/s/1", "deepseek"),
        ("https://grok.x.ai/", "grok"),
        ("https://x.ai/grok", "grok"),
        ("https://claude.ai/chat/abc", "claude"),
        ("https://www.perplexity.ai/search/q", "perplexity"),
        ("https://example.com/chat", "generic"),
    ],
)
def test_select_maps_urls_to_profiles(url: str, expected: str) -> None:
    assert build_profile_registry().select(url).name == expected


def test_host_identity_keeps_host_and_path_only() -> None:
    assert host_identity("HTTPS://Claude.AI/Chat/1?x=2#frag") == "claude.ai/Chat/1"
    assert host_identity("ChatGPT.com") == "chatgpt.com"


def test_first_registered_rule_wins() -> None:
    first = LocatorProfile(
        name="first",
        display_name="First",
        user_message_selector=".a",
        fallback_user_message_selector="",
        message_content_selector="",
        fallback_message_content_selector="",
        conversation_container_selector="body",
    )
    second = LocatorProfile(
        name="second",
        display_name="Second",
        user_message_selector=".b",
        fallback_user_message_selector="",
        message_content_selector="",
        fallback_message_content_selector="",
        conversation_container_selector="body",
    )
    registry = ProfileRegistry()
    registry.register(PlatformRule(pattern=re.compile(r"example"), profile=first))
    registry.register(PlatformRule(pattern=re.compile(r"example\.com"), profile=second))

    assert registry.select("https://example.com").name == "first"
    assert first.user_message_selectors == (".a",)
    assert first.content_selectors == ()


def test_registry_without_fallback_raises_lookup_error() -> None:
    with pytest.raises(LookupError, match="No platform profile"):
        ProfileRegistry().select("https://nowhere.test")


def test_resolve_tags_ui_version_from_markers() -> None:
    registry = build_profile_registry()
    new_ui = LiveDocument("<div data-testid='conversation-turn'></div>")
    legacy = LiveDocument("<div class='chat-message'></div>")
    bare = LiveDocument("<div></div>")

    assert resolve(registry, "https://chatgpt.com/", new_ui).ui_version == "new-ui"
    assert resolve(registry, "https://chatgpt.com/", legacy).ui_version == "legacy"
    assert resolve(registry, "https://chatgpt.com/", bare).ui_version == "unknown"
    assert resolve(registry, "https://chatgpt.com/").ui_version == "unknown"
    assert resolve(registry, "https://example.com/", bare) == GENERIC


def test_is_ready_checks_the_conversation_container() -> None:
    registry = build_profile_registry()
    claude = registry.select("https://claude.ai/")

    assert is_ready(claude, LiveDocument("<main class='chat-container'></main>"))
    assert not is_ready(claude, LiveDocument("<main></main>"))
