"""Built-in locator profiles for supported chat platforms."""

from __future__ import annotations

import re

from chat_indexer.platforms.base import LocatorProfile, PlatformRule, VersionMarker

_SHARED_FALLBACK_USER = 'div[class*="user"], .human-message, [data-role="user"]'
_SHARED_FALLBACK_CONTENT = ".user-text, .message-text, .content"

CHATGPT = LocatorProfile(
    name="chatgpt",
    display_name="ChatGPT",
    user_message_selector='[data-message-author-role="user"]',
    fallback_user_message_selector=(
        '.group.w-full:has([data-message-author-role="user"]), '
        'div[class*="user"], .message[data-role="user"]'
    ),
    message_content_selector=".whitespace-pre-wrap",
    fallback_message_content_selector=(
        "div[data-message-id] div.whitespace-pre-wrap, .message-text, .text-base"
    ),
    conversation_container_selector='[data-testid^="conversation-turn"]',
)

GEMINI = LocatorProfile(
    name="gemini",
    display_name="Gemini",
    user_message_selector='[data-message-author="user"]',
    fallback_user_message_selector='.user-message, div[class*="user"], .query-wrapper',
    message_content_selector=".message-content",
    fallback_message_content_selector=".message-text, .user-text, .query-text",
    conversation_container_selector=".conversation-container",
)

DEEPSEEK = LocatorProfile(
    name="deepseek",
    display_name="DeepSeek",
    user_message_selector=".user-message",
    fallback_user_message_selector=_SHARED_FALLBACK_USER,
    message_content_selector=".message-content",
    fallback_message_content_selector=_SHARED_FALLBACK_CONTENT,
    conversation_container_selector=".chat-container",
)

GROK = LocatorProfile(
    name="grok",
    display_name="Grok",
    user_message_selector=".user-message",
    fallback_user_message_selector=_SHARED_FALLBACK_USER,
    message_content_selector=".message-content",
    fallback_message_content_selector=_SHARED_FALLBACK_CONTENT,
    conversation_container_selector=".chat-interface",
)

CLAUDE = LocatorProfile(
    name="claude",
    display_name="Claude",
    user_message_selector=".user-message",
    fallback_user_message_selector=_SHARED_FALLBACK_USER,
    message_content_selector=".message-content",
    fallback_message_content_selector=_SHARED_FALLBACK_CONTENT,
    conversation_container_selector=".chat-container",
)

PERPLEXITY = LocatorProfile(
    name="perplexity",
    display_name="Perplexity",
    user_message_selector=".user-input-container",
    fallback_user_message_selector='[data-testid="user-message"], .user-query, div[class*="user"]',
    message_content_selector=".prose",
    fallback_message_content_selector=".message-content, .user-text, .query-text",
    conversation_container_selector=".thread-container",
)

GENERIC = LocatorProfile(
    name="generic",
    display_name="Unknown Platform",
    user_message_selector='.user-message, .human-message, [role="user"]',
    fallback_user_message_selector=".message:has(.user)",
    message_content_selector=".message-content, .content, .text",
    fallback_message_content_selector=".content",
    conversation_container_selector=".conversation, .chat, .messages",
)


def builtin_rules() -> tuple[PlatformRule, ...]:
    """Return platform rules in match priority order."""
    return (
        PlatformRule(
            pattern=re.compile(r"chat\.openai\.com|chatgpt\.com"),
            profile=CHATGPT,
            version_markers=(
                VersionMarker(selector='[data-testid="conversation-turn"]', version="new-ui"),
                VersionMarker(selector=".chat-message", version="legacy"),
            ),
        ),
        PlatformRule(
            pattern=re.compile(r"gemini\.google\.com|bard\.google\.com"),
            profile=GEMINI,
            version_markers=(
                VersionMarker(selector="[data-message-author]", version="gemini"),
                VersionMarker(selector=".conversation-container", version="bard-legacy"),
            ),
        ),
        PlatformRule(pattern=re.compile(r"chat\.deepseek\.com|deepseek\.com"), profile=DEEPSEEK),
        PlatformRule(pattern=re.compile(r"grok\.x\.ai|x\.ai/grok"), profile=GROK),
        PlatformRule(pattern=re.compile(r"claude\.ai"), profile=CLAUDE),
        PlatformRule(pattern=re.compile(r"perplexity\.ai"), profile=PERPLEXITY),
    )
