#!/usr/bin/env python3
"""
gen_tags.py

Count tag usage across the blog posts and write public/tags.json for the
tag listing page.

Usage:
  python3 gen_tags.py
  python3 gen_tags.py --dry-run
  python3 gen_tags.py --posts-dir pages/posts --output public/tags.json
"""

import sys
import json
import asyncio
import argparse
from collections import Counter
from pathlib import Path
import yaml

ROOT = Path(__file__).resolve().parent
POSTS_DIR = ROOT / "pages" / "posts"
OUTPUT = Path("public") / "tags.json"

# Listing pages live next to the posts but are not posts themselves
INDEX_PREFIX = "index."

class GenTagsError(Exception):
    pass

class FrontMatterError(GenTagsError):
    pass

class InvalidPostError(GenTagsError):
    pass

def load_front_matter(text: str, source="<string>"):
    """Split a document into its YAML front matter and body.

    A document that does not open with a ``---`` line has no front matter and
    yields an empty mapping. Anything that looks like front matter but cannot
    be read as a YAML mapping raises FrontMatterError.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != "---":
        return {}, text

    # An unclosed block runs to the end of the document
    end_idx = len(lines)
    for idx in range(1, len(lines)):
        if lines[idx].rstrip() == "---":
            end_idx = idx
            break

    yaml_text = "".join(lines[1:end_idx])
    body = "".join(lines[end_idx + 1:])

    try:
        front = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        raise FrontMatterError(f"{source}: invalid front matter: {e}") from e

    if front is None:
        front = {}
    if not isinstance(front, dict):
        raise FrontMatterError(f"{source}: front matter is not a mapping")

    return front, body

def split_tags(value, source="<string>"):
    if not isinstance(value, str):
        raise InvalidPostError(
            f"{source}: 'tag' must be a comma-separated string, got {type(value).__name__}"
        )
    # Case and repeats are kept, each occurrence counts
    return [t.strip() for t in value.split(",")]

def is_index(name: str):
    return name.startswith(INDEX_PREFIX)

def read_post_tags(path: Path, skip_invalid=False):
    """Return the tag labels of one post, or None when the post is excluded."""
    if is_index(path.name):
        return None

    text = path.read_text(encoding="utf-8-sig", errors="replace")
    try:
        front, _ = load_front_matter(text, source=path)
        if front.get("draft"):
            return None
        return split_tags(front.get("tag"), source=path)
    except GenTagsError as e:
        if not skip_invalid:
            raise
        print(f"Warning: skipping {e}", file=sys.stderr)
        return None

def tally(tag_lists):
    counts = Counter()
    for tags in tag_lists:
        if tags:
            counts.update(tags)
    return dict(counts)

async def collect_tags(posts_dir: Path, *, skip_invalid=False):
    names = sorted(await asyncio.to_thread(lambda: [p.name for p in posts_dir.iterdir()]))
    # gather keeps argument order, so the merge below follows the listing
    return await asyncio.gather(
        *(asyncio.to_thread(read_post_tags, posts_dir / name, skip_invalid) for name in names)
    )

def count_tags(posts_dir=POSTS_DIR, *, skip_invalid=False):
    tag_lists = asyncio.run(collect_tags(Path(posts_dir), skip_invalid=skip_invalid))
    return tally(tag_lists)

def to_json(tags):
    return json.dumps(tags, ensure_ascii=False, separators=(",", ":"))

def generate(posts_dir=POSTS_DIR, output=OUTPUT, *, skip_invalid=False):
    """Count tags under posts_dir and write the mapping to output.

    Nothing is written unless every post was read; a failure leaves any
    previous output file untouched.
    """
    tags = count_tags(posts_dir, skip_invalid=skip_invalid)
    Path(output).write_text(to_json(tags), encoding="utf-8")
    return tags

def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Count tag usage across blog posts and write it as JSON."
    )
    parser.add_argument("--posts-dir", type=Path, default=POSTS_DIR,
                        help=f"Directory of posts (default: {POSTS_DIR})")
    parser.add_argument("--output", type=Path, default=OUTPUT,
                        help=f"JSON file to write (default: {OUTPUT})")
    parser.add_argument("--skip-invalid", action="store_true",
                        help="Warn about and skip posts with a bad front matter or tag field.")
    parser.add_argument("--dry-run", action="store_true",
                        help="Print the JSON instead of writing it.")
    args = parser.parse_args(argv)

    if args.dry_run:
        tags = count_tags(args.posts_dir, skip_invalid=args.skip_invalid)
        print(to_json(tags))
        return 0

    tags = generate(args.posts_dir, args.output, skip_invalid=args.skip_invalid)
    print(f"Wrote {len(tags)} tags to {args.output}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
