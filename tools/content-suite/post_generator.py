#!/usr/bin/env python3
"""
post_generator.py — Turns a Reddit thread brief into a localized social post.

Uses claude-agent-sdk (local CLI auth) for two sequential calls: one that
rewrites the thread into the target language, and one that derives an
English image prompt from the finished post.

Usage:
    python post_generator.py --input thread.txt --style "Story-driven" --hook "Bold claim"
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKError,
    TextBlock,
    query,
)

from factory_utils import get_logger

log = get_logger("post_generator")

DEFAULT_LANGUAGE = "Sorani Kurdish (Central Kurdish)"
DEFAULT_PLATFORM = "LinkedIn"
DEFAULT_STYLE = "Professional, concise, LinkedIn-ready"
DEFAULT_HOOK = "Question hook"
VERBOSITY_LEVELS = ("low", "medium", "high")

_VERBOSITY_HINTS = {
    "low": "Keep it short: 3-5 tight sentences.",
    "medium": "Aim for a medium-length post of a few short paragraphs.",
    "high": "Write a fuller post with several paragraphs and concrete detail.",
}

_IMAGE_SYSTEM_PROMPT = (
    "You are an expert at creating concise, concrete visual prompts for image generation. "
    "Language: English."
)


@dataclass(frozen=True)
class GenerationOptions:
    style: str = DEFAULT_STYLE
    hook: str = DEFAULT_HOOK
    use_emojis: bool = True
    use_hashtags: bool = False
    model: str | None = None
    verbosity: str = "medium"
    language: str = DEFAULT_LANGUAGE
    platform: str = DEFAULT_PLATFORM


@dataclass(frozen=True)
class GeneratedPost:
    post_text: str
    image_prompt: str


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------


def build_system_prompt(options: GenerationOptions) -> str:
    return (
        f"You are a {options.language} social media copywriter. "
        f"Always respond only in {options.language}."
    )


def build_post_prompt(text: str, options: GenerationOptions) -> str:
    """Prompt that rewrites a Reddit thread brief into the target post."""
    if options.verbosity not in _VERBOSITY_HINTS:
        raise ValueError(f"verbosity must be one of {VERBOSITY_LEVELS}, got {options.verbosity!r}")

    emoji_rule = (
        "Use emojis for bullets and numbers and tasteful emphasis."
        if options.use_emojis
        else "Avoid using emojis."
    )
    hashtag_rule = (
        "Include a short line of relevant hashtags at the end (2-6)."
        if options.use_hashtags
        else "Do not include hashtags."
    )
    return (
        f"Rewrite this Reddit content (post + selected comments) into a high-quality "
        f"{options.language} {options.platform} post.\n\n"
        f"Constraints:\n"
        f"- Output must be {options.language} only.\n"
        f"- Style: {options.style}.\n"
        f"- Hook type: {options.hook}. Start with an attention-grabbing hook.\n"
        f"- Keep it professional and concise, with a clear narrative.\n"
        f"- {_VERBOSITY_HINTS[options.verbosity]}\n"
        f"- {emoji_rule}\n"
        f"- {hashtag_rule}\n"
        f"- Preserve factual accuracy for quotes/stats.\n\n"
        f"Content:\n{text}"
    )


def build_image_prompt_request(post_text: str, platform: str = DEFAULT_PLATFORM) -> str:
    return (
        f"From the following {platform} post, derive one concise English prompt that "
        f"describes a {platform}-suitable illustrative image (no text in image). "
        f"Prefer a wide aspect (landscape). Return only the prompt.\n\n"
        f"Post:\n{post_text}"
    )


# ---------------------------------------------------------------------------
# SDK interaction
# ---------------------------------------------------------------------------


def _sdk_options(system_prompt: str, model: str | None) -> ClaudeAgentOptions:
    # Remove CLAUDECODE guard so SDK can spawn a CLI subprocess
    os.environ.pop("CLAUDECODE", None)
    return ClaudeAgentOptions(
        cwd=str(Path.cwd()),
        permission_mode="bypassPermissions",
        max_turns=1,
        system_prompt=system_prompt,
        model=model,
    )


async def call_claude(prompt: str, system_prompt: str, model: str | None = None) -> str:
    """Send one prompt and return the concatenated text of the reply."""
    chunks: list[str] = []
    try:
        async for msg in query(prompt=prompt, options=_sdk_options(system_prompt, model)):
            if isinstance(msg, AssistantMessage):
                for block in msg.content:
                    if isinstance(block, TextBlock):
                        chunks.append(block.text)
    except ClaudeSDKError as exc:
        raise RuntimeError(f"Claude SDK error: {exc}") from exc

    output = "\n".join(c for c in chunks if c.strip()).strip()
    if not output:
        raise RuntimeError("Claude returned empty output.")
    return output


async def generate_post_async(text: str, options: GenerationOptions) -> GeneratedPost:
    if not text.strip():
        raise ValueError("Nothing to rewrite: thread text is empty")

    post_text = await call_claude(
        build_post_prompt(text, options),
        build_system_prompt(options),
        options.model,
    )
    log.info("Generated %s post: %d chars", options.platform, len(post_text))

    image_prompt = await call_claude(
        build_image_prompt_request(post_text, options.platform),
        _IMAGE_SYSTEM_PROMPT,
        options.model,
    )
    log.info("Derived image prompt: %s", image_prompt[:120])
    return GeneratedPost(post_text=post_text, image_prompt=image_prompt)


def generate_post(text: str, options: GenerationOptions | None = None) -> GeneratedPost:
    """Synchronous wrapper around :func:`generate_post_async`."""
    return asyncio.run(generate_post_async(text, options or GenerationOptions()))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main() -> int:
    parser = argparse.ArgumentParser(description="Rewrite a thread brief into a localized post")
    parser.add_argument("--input", required=True, help="Path to a text file holding the thread brief.")
    parser.add_argument("--style", default=DEFAULT_STYLE)
    parser.add_argument("--hook", default=DEFAULT_HOOK)
    parser.add_argument("--language", default=DEFAULT_LANGUAGE)
    parser.add_argument("--verbosity", choices=VERBOSITY_LEVELS, default="medium")
    parser.add_argument("--model", default=None)
    args = parser.parse_args()

    source = Path(args.input)
    if not source.is_file():
        log.error("Input file not found: %s", source)
        return 2

    options = GenerationOptions(
        style=args.style,
        hook=args.hook,
        language=args.language,
        verbosity=args.verbosity,
        model=args.model,
    )
    try:
        result = generate_post(source.read_text(encoding="utf-8"), options)
    except (RuntimeError, ValueError) as exc:
        log.error("Generation failed: %s", exc)
        return 1

    print(result.post_text)
    print(f"\n<!-- visual: {result.image_prompt} -->")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
