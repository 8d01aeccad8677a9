#!/usr/bin/env python3
"""Reddit-to-post operator CLI.

Search Reddit, pick a thread, and turn it into a localized post draft with an
image prompt (and optionally the image itself).

Usage examples:
    python reddit_scout.py --query "AI marketing" --sort trending --time day
    python reddit_scout.py --query "AI marketing" --pick 0 --hook "Bold claim" --hashtags
    python reddit_scout.py --query "AI marketing" --pick 2 --image
"""

from __future__ import annotations

import argparse
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from factory_utils import (
    DRAFTS_DIR,
    DUMPS_DIR,
    atomic_write_json,
    atomic_write_text,
    config_float,
    get_logger,
    load_config,
)
from post_generator import (
    DEFAULT_HOOK,
    DEFAULT_LANGUAGE,
    DEFAULT_STYLE,
    VERBOSITY_LEVELS,
    GeneratedPost,
    GenerationOptions,
    generate_post,
)
from reddit_auth import TokenCache
from reddit_fetch import (
    DEFAULT_TIMEOUT_S,
    EndpointFallbackFetcher,
    ProxyTransport,
    RequestsTransport,
    build_session,
)
from reddit_listing import Post, RedditError
from reddit_search import ORDERS, SORTS, TIME_WINDOWS, SearchOptions, search
from reddit_thread import Thread, fetch_thread, thread_to_text
from visual_artist import generate_image, visual_marker

log = get_logger("reddit_scout")

REDDIT_HOST = "https://www.reddit.com"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reddit-to-post content pipeline")
    parser.add_argument("--query", required=True, help="Keyword/topic to search for.")
    parser.add_argument("--sort", choices=SORTS, default="trending")
    parser.add_argument("--time", dest="time_window", choices=TIME_WINDOWS, default="day")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--title-only", dest="title_only", action="store_true", default=True,
                       help="Match the query against titles only (default).")
    scope.add_argument("--all-fields", dest="title_only", action="store_false",
                       help="Match the query against title and body.")
    parser.add_argument("--order", choices=ORDERS, default=None,
                        help="Client-side ordering of the results.")
    parser.add_argument("--limit", type=int, default=50)
    parser.add_argument("--pick", type=int, default=None,
                        help="Zero-based index of the result to turn into a post.")

    gen = parser.add_argument_group("generation")
    gen.add_argument("--style", default=DEFAULT_STYLE)
    gen.add_argument("--hook", default=DEFAULT_HOOK)
    gen.add_argument("--emojis", dest="use_emojis", action=argparse.BooleanOptionalAction, default=True)
    gen.add_argument("--hashtags", dest="use_hashtags", action=argparse.BooleanOptionalAction, default=False)
    gen.add_argument("--model", default=None, help="Claude model name (SDK default if omitted).")
    gen.add_argument("--verbosity", choices=VERBOSITY_LEVELS, default="medium")
    gen.add_argument("--language", default=DEFAULT_LANGUAGE)
    gen.add_argument("--image", action="store_true", help="Also render the image with Gemini.")
    return parser.parse_args(argv)


def build_fetcher(config: dict[str, str | None]) -> EndpointFallbackFetcher:
    """Compose the process-wide retrieval context from config."""
    user_agent = config["REDDIT_USER_AGENT"] or "reddit-post-forge/1.0"
    timeout = config_float(config, "REDDIT_REQUEST_TIMEOUT", DEFAULT_TIMEOUT_S)
    session = build_session(user_agent)

    proxy = config.get("REDDIT_PROXY_URL")
    if proxy:
        log.info("Routing Reddit requests through proxy %s", proxy)
        transport = ProxyTransport(session, proxy_prefix=proxy, timeout=timeout)
    else:
        transport = RequestsTransport(session, timeout=timeout)

    token_cache = TokenCache(
        config.get("REDDIT_CLIENT_ID"),
        config.get("REDDIT_CLIENT_SECRET"),
        user_agent,
        session=session,
        timeout=timeout,
    )
    return EndpointFallbackFetcher(transport, user_agent, token_cache=token_cache)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9_-]+", "-", value.strip().lower()).strip("-")
    return slug[:60].strip("-") or "topic"


def format_results(posts: list[Post]) -> str:
    lines = []
    for idx, post in enumerate(posts):
        lines.append(
            f"[{idx}] r/{post.subreddit} | {post.score} pts | {post.num_comments} comments | {post.title}"
        )
    return "\n".join(lines)


def write_search_dump(query: str, options: SearchOptions, posts: list[Post]) -> Path:
    stamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
    path = DUMPS_DIR / f"search_{slugify(query)}_{stamp}.json"
    payload: dict[str, Any] = {
        "query": query,
        "options": {
            "limit": options.limit,
            "sort": options.sort,
            "t": options.time_window,
            "title_only": options.title_only,
            "order": options.order,
        },
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "post_count": len(posts),
        "posts": [p.to_dict() for p in posts],
    }
    atomic_write_json(path, payload)
    return path


def build_draft_markdown(thread: Thread, generated: GeneratedPost, options: GenerationOptions) -> str:
    """Assemble the reviewable draft with frontmatter and the visual marker."""
    now = datetime.now(timezone.utc).isoformat()
    post = thread.post
    return (
        f"---\n"
        f"source_title: {post.title}\n"
        f"source_thread: {REDDIT_HOST}{post.permalink}\n"
        f"subreddit: {post.subreddit}\n"
        f"style: {options.style}\n"
        f"hook: {options.hook}\n"
        f"language: {options.language}\n"
        f"generated_at: {now}\n"
        f"---\n\n"
        f"{generated.post_text.strip()}\n\n"
        f"{visual_marker(generated.image_prompt)}\n"
    )


def write_draft(thread: Thread, generated: GeneratedPost, options: GenerationOptions) -> Path:
    date_tag = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    path = DRAFTS_DIR / f"{date_tag}_{slugify(thread.post.title)}.md"
    atomic_write_text(path, build_draft_markdown(thread, generated, options))
    return path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    search_options = SearchOptions(
        limit=args.limit,
        sort=args.sort,
        time_window=args.time_window,
        title_only=args.title_only,
        order=args.order,
    )
    gen_options = GenerationOptions(
        style=args.style,
        hook=args.hook,
        use_emojis=args.use_emojis,
        use_hashtags=args.use_hashtags,
        model=args.model,
        verbosity=args.verbosity,
        language=args.language,
    )

    fetcher = build_fetcher(load_config())

    try:
        posts = search(fetcher, args.query, search_options)
    except ValueError as exc:
        log.error("Invalid search: %s", exc)
        return 2
    except RedditError as exc:
        log.error("Search failed: %s", exc)
        return 1

    dump_path = write_search_dump(args.query, search_options, posts)
    print(format_results(posts))
    print(f"\nSearch results saved to: {dump_path}")

    if args.pick is None:
        return 0
    if not 0 <= args.pick < len(posts):
        log.error("--pick %d out of range (0-%d)", args.pick, len(posts) - 1)
        return 2

    picked = posts[args.pick]
    try:
        thread = fetch_thread(fetcher, picked.permalink)
        generated = generate_post(thread_to_text(thread), gen_options)
    except RedditError as exc:
        log.error("Could not load thread %s: %s", picked.permalink, exc)
        return 1
    except (RuntimeError, ValueError) as exc:
        log.error("Generation failed: %s", exc)
        return 1

    draft_path = write_draft(thread, generated, gen_options)
    print(f"Draft saved to: {draft_path}")

    if args.image:
        try:
            image_path = generate_image(generated.image_prompt)
        except (RuntimeError, ValueError) as exc:
            log.error("Image generation failed: %s", exc)
            return 1
        except Exception as exc:
            log.error("Unexpected image error: %s", exc)
            return 1
        print(f"MEDIA: {image_path}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
