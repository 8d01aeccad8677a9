#!/usr/bin/env python3
"""
visual_artist.py — Image generation for Reddit-derived post drafts.

Renders the illustration for a draft with Google Gemini. The prompt comes
either directly from the command line or from the ``<!-- visual: ... -->``
marker that reddit_scout.py writes into each draft, so an operator can edit
the marker by hand and re-render.

Usage:
    python visual_artist.py --prompt "a lighthouse guiding small boats at dawn"
    python visual_artist.py --from-draft drafts/2026-02-15_ai-marketing.md
    python visual_artist.py --from-latest --aspect 16:9
"""

from __future__ import annotations

import argparse
import base64
import re
import sys
from datetime import datetime
from io import BytesIO
from pathlib import Path

from factory_utils import DRAFTS_DIR, IMAGES_DIR, get_logger, load_config

logger = get_logger("visual_artist")

IMAGE_MODEL = "gemini-3-pro-image-preview"
# Closest Gemini ratio to a landscape feed image (1536x1024)
DEFAULT_ASPECT = "3:2"
ASPECT_RATIOS = ("1:1", "3:2", "2:3", "16:9", "4:3")
RESOLUTIONS = ("1K", "2K", "4K")

_VISUAL_RE = re.compile(r"<!--\s*visual:\s*(.+?)\s*-->", re.DOTALL)


# ---------------------------------------------------------------------------
# Draft markers
# ---------------------------------------------------------------------------


def visual_marker(prompt: str) -> str:
    """Inline marker carrying the image prompt inside a markdown draft."""
    flat = " ".join(prompt.split()).replace("-->", "")
    return f"<!-- visual: {flat} -->"


def extract_visual_prompt(draft_path: Path) -> str | None:
    """Extract the visual description from a draft's ``<!-- visual: ... -->`` marker."""
    text = draft_path.read_text(encoding="utf-8")
    match = _VISUAL_RE.search(text)
    return " ".join(match.group(1).split()) if match else None


def find_latest_draft() -> Path | None:
    """Return the most recently modified ``.md`` file in the drafts directory."""
    if not DRAFTS_DIR.is_dir():
        return None
    md_files = sorted(DRAFTS_DIR.glob("*.md"), key=lambda p: p.stat().st_mtime, reverse=True)
    return md_files[0] if md_files else None


def _slugify(text: str, max_words: int = 5) -> str:
    """Turn the first few words of *text* into a filename-safe slug."""
    words = re.sub(r"[^a-z0-9\s]", "", text.lower()).split()[:max_words]
    return "-".join(words) if words else "image"


# ---------------------------------------------------------------------------
# Image generation
# ---------------------------------------------------------------------------


def generate_image(
    prompt: str,
    resolution: str = "1K",
    filename: str | None = None,
    aspect_ratio: str = DEFAULT_ASPECT,
) -> Path:
    """Generate an image from *prompt* via Gemini and save it to ``images/``.

    Returns the absolute path of the saved PNG.
    """
    config = load_config()
    api_key = config.get("GEMINI_API_KEY")
    if not api_key:
        raise ValueError("GEMINI_API_KEY not found in .env")

    # Lazy imports, after API key validation
    from google import genai
    from google.genai import types
    from PIL import Image as PILImage

    client = genai.Client(api_key=api_key)

    IMAGES_DIR.mkdir(parents=True, exist_ok=True)
    if filename:
        out_name = filename if filename.endswith(".png") else f"{filename}.png"
    else:
        stamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        out_name = f"{stamp}-{_slugify(prompt)}.png"
    output_path = IMAGES_DIR / out_name

    logger.info("Generating image (resolution=%s, aspect=%s): %s", resolution, aspect_ratio, prompt[:120])

    response = client.models.generate_content(
        model=IMAGE_MODEL,
        contents=prompt,
        config=types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=types.ImageConfig(image_size=resolution, aspect_ratio=aspect_ratio),
        ),
    )

    for part in response.parts or []:
        if part.text is not None:
            logger.debug("Model text: %s", part.text)
            continue
        if part.inline_data is None:
            continue

        image_data = part.inline_data.data
        if isinstance(image_data, str):
            image_data = base64.b64decode(image_data)

        image = PILImage.open(BytesIO(image_data))
        if image.mode == "RGBA":
            rgb_image = PILImage.new("RGB", image.size, (255, 255, 255))
            rgb_image.paste(image, mask=image.split()[3])
            image = rgb_image
        elif image.mode != "RGB":
            image = image.convert("RGB")
        image.save(str(output_path), "PNG")

        logger.info("Image saved: %s", output_path.resolve())
        return output_path.resolve()

    raise RuntimeError("No image was generated in the API response")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _prompt_from_draft(draft_path: Path) -> str | None:
    prompt = extract_visual_prompt(draft_path)
    if not prompt:
        logger.error(
            "No <!-- visual: DESCRIPTION --> marker found in %s. "
            "Add one to your draft, e.g.: <!-- visual: a serene mountain lake at dawn -->",
            draft_path,
        )
    return prompt


def main() -> None:
    parser = argparse.ArgumentParser(description="Render the illustration for a post draft")

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--prompt", "-p", help="Direct text prompt for image generation")
    source.add_argument("--from-draft", metavar="PATH", help="Use the visual marker of a draft file")
    source.add_argument(
        "--from-latest",
        action="store_true",
        help="Use the visual marker of the most recent draft in drafts/",
    )

    parser.add_argument("--resolution", "-r", choices=RESOLUTIONS, default="1K")
    parser.add_argument("--aspect", "-a", choices=ASPECT_RATIOS, default=DEFAULT_ASPECT)
    parser.add_argument("--filename", "-f", help="Override output filename")

    args = parser.parse_args()

    prompt: str | None = args.prompt
    if args.from_draft:
        draft_path = Path(args.from_draft)
        if not draft_path.is_file():
            logger.error("Draft file not found: %s", draft_path)
            sys.exit(1)
        prompt = _prompt_from_draft(draft_path)
    elif args.from_latest:
        draft_path = find_latest_draft()
        if not draft_path:
            logger.error("No .md files found in %s", DRAFTS_DIR)
            sys.exit(1)
        logger.info("Using latest draft: %s", draft_path.name)
        prompt = _prompt_from_draft(draft_path)

    if not prompt:
        sys.exit(1)

    try:
        image_path = generate_image(
            prompt,
            resolution=args.resolution,
            filename=args.filename,
            aspect_ratio=args.aspect,
        )
        print(f"MEDIA: {image_path}")
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)
    except RuntimeError as exc:
        logger.error("Generation failed: %s", exc)
        sys.exit(1)
    except Exception as exc:
        logger.error("Unexpected error: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
