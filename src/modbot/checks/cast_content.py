"""Checks over the text and embeds of a cast."""

from __future__ import annotations

import mimetypes
import re
from typing import Any
from urllib.parse import urlparse

import re2

from modbot.core.errors import RuleConfigurationError

from .base import ArgSpec, CheckContext, CheckResult, CheckSet

KNOWN_IMAGE_CDN_HOSTNAMES = ("imagedelivery.net", "imgur.com")

MENTION_RE = re.compile(r"@\w+")
LINK_RE = re.compile(r"https?://\S+", re.IGNORECASE)

NO_CAST = CheckResult(False, "No cast to check")

checks = CheckSet()


def _int_arg(value: object, default: int = 0) -> int:
    if value in (None, ""):
        return default
    return int(value)  # type: ignore[arg-type]


def _compile_pattern(pattern: str, *, ignore_case: bool = False) -> Any:
    """Compile an owner-supplied pattern with RE2, which matches in linear time.

    Raises:
        RuleConfigurationError: If RE2 cannot compile ``pattern``
    """
    options = re2.Options()
    options.case_sensitive = not ignore_case
    options.log_errors = False
    try:
        return re2.compile(pattern, options)
    except re2.error as exc:
        raise RuleConfigurationError(f"Invalid pattern {pattern}: {exc}") from exc


def _validate_pattern(value: Any) -> None:
    _compile_pattern(str(value))


@checks.register(
    "containsText",
    friendly_name="Contains Text",
    description="Check if the text contains a specific string",
    check_type="cast",
    category="cast",
    allow_multiple=True,
    invertable=True,
    args={
        "searchText": ArgSpec(
            type="string",
            friendly_name="Search Text",
            description="The text to search for",
        ),
        "caseSensitive": ArgSpec(
            type="boolean",
            friendly_name="Case Sensitive",
            description="If checked, 'abc' is different from 'ABC'",
        ),
    },
)
async def contains_text(ctx: CheckContext) -> CheckResult:
    cast = ctx.cast
    if cast is None:
        return NO_CAST
    search_text = str(ctx.args.get("searchText", ""))
    if ctx.args.get("caseSensitive"):
        found = search_text in cast.text
    else:
        found = search_text.lower() in cast.text.lower()
    if found:
        return CheckResult(True, f'Cast contains "{search_text}"')
    return CheckResult(False, f'Cast does not contain "{search_text}"')


@checks.register(
    "textMatchesPattern",
    friendly_name="Matches Pattern (Regex)",
    description="Check if the text matches a specific pattern",
    check_type="cast",
    category="cast",
    allow_multiple=True,
    invertable=True,
    args={
        "pattern": ArgSpec(
            type="string",
            friendly_name="Pattern",
            required=True,
            description="The regular expression to match against. No leading or trailing slashes.",
            validator=_validate_pattern,
        ),
        "caseInsensitive": ArgSpec(
            type="boolean",
            friendly_name="Ignore Case",
            description="If checked, 'abc' is the same as 'ABC'",
        ),
    },
)
async def text_matches_pattern(ctx: CheckContext) -> CheckResult:
    cast = ctx.cast
    if cast is None:
        return NO_CAST
    pattern = str(ctx.args.get("pattern", ""))
    regex = _compile_pattern(pattern, ignore_case=bool(ctx.args.get("caseInsensitive")))
    if regex.search(cast.text):
        return CheckResult(True, f"Cast matches pattern {pattern}")
    return CheckResult(False, f"Cast does not match pattern {pattern}")


@checks.register(
    "castLength",
    friendly_name="Cast Length",
    description="Check if the cast length is within a range",
    check_type="cast",
    category="cast",
    args={
        "min": ArgSpec(
            type="number",
            friendly_name="Less than",
            description="Setting a value of 5 would trigger this rule if the length was 0 to 4 characters.",
        ),
        "max": ArgSpec(
            type="number",
            friendly_name="More than",
            description="Setting a value of 10 would trigger this rule if the length was 11 or more characters.",
        ),
    },
)
async def cast_length(ctx: CheckContext) -> CheckResult:
    cast = ctx.cast
    if cast is None:
        return NO_CAST
    minimum = _int_arg(ctx.args.get("min"))
    maximum = _int_arg(ctx.args.get("max"))
    length = len(cast.text)

    if minimum and length > minimum:
        return CheckResult(False, f"Cast is greater than {minimum} characters")
    if maximum and length < maximum:
        return CheckResult(False, f"Cast is less than {maximum} characters")
    return CheckResult(True, "Cast is within length limits")


@checks.register(
    "containsTooManyMentions",
    friendly_name="Contains Mentions",
    description="Check if the text contains a certain amount of mentions",
    check_type="cast",
    category="cast",
    invertable=True,
    args={
        "maxMentions": ArgSpec(
            type="number",
            friendly_name="Max Mentions",
            required=True,
            placeholder="0",
            description="The maximum number of mentions allowed",
        ),
    },
)
async def contains_too_many_mentions(ctx: CheckContext) -> CheckResult:
    cast = ctx.cast
    if cast is None:
        return NO_CAST
    max_mentions = _int_arg(ctx.args.get("maxMentions"))
    if len(MENTION_RE.findall(cast.text)) > max_mentions:
        return CheckResult(True, f"Too many mentions. Max is {max_mentions}")
    return CheckResult(False, "Mentions are within limits")


@checks.register(
    "containsLinks",
    friendly_name="Contains Links",
    description="Check if the text contains any links",
    check_type="cast",
    category="cast",
    invertable=True,
    args={
        "maxLinks": ArgSpec(
            type="number",
            friendly_name="Max Links",
            description="The maximum number of links allowed",
        ),
    },
)
async def contains_links(ctx: CheckContext) -> CheckResult:
    cast = ctx.cast
    if cast is None:
        return NO_CAST
    max_links = _int_arg(ctx.args.get("maxLinks"))
    if len(LINK_RE.findall(cast.text)) > max_links:
        return CheckResult(True, f"Too many links. Max is {max_links}")
    return CheckResult(False, "Links are within limits")


def _is_image(url: str) -> bool:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return False
    mime, _ = mimetypes.guess_type(url)
    return bool(mime and mime.startswith("image")) or parsed.hostname in KNOWN_IMAGE_CDN_HOSTNAMES


def _is_video(url: str) -> bool:
    mime, _ = mimetypes.guess_type(url)
    return bool(mime) and (mime.startswith("video") or mime.startswith("application/vnd.apple.mpegurl"))


@checks.register(
    "containsEmbeds",
    friendly_name="Contains Embedded Content",
    description="Check if the cast contains images, gifs, videos, frames or links",
    check_type="cast",
    category="cast",
    allow_multiple=True,
    invertable=True,
    args={
        "images": ArgSpec(type="boolean", friendly_name="Images", default=True, description="Check for images or gifs"),
        "videos": ArgSpec(type="boolean", friendly_name="Videos", default=True, description="Check for videos"),
        "frames": ArgSpec(type="boolean", friendly_name="Frames", default=True, description="Check for frames"),
        "links": ArgSpec(type="boolean", friendly_name="Links", default=True, description="Check for links"),
        "casts": ArgSpec(type="boolean", friendly_name="Casts", default=True, description="Check for quote casts"),
        "domain": ArgSpec(
            type="string",
            friendly_name="Domain",
            placeholder="e.g. glass.com",
            description=(
                "Check for embeds from a specific domain. Example: if you check 'Frames' and add "
                "glass.com, this check will trigger for frames from glass.com."
            ),
        ),
    },
)
async def contains_embeds(ctx: CheckContext) -> CheckResult:
    """Triggers when the cast carries any of the selected embed kinds.

    Images and videos are recognised from the URL alone. Frames look like
    plain links, so telling them apart requires fetching the hydrated cast.
    """
    cast = ctx.cast
    if cast is None:
        return NO_CAST
    args = ctx.args
    domain = str(args.get("domain") or "")

    wanted = [
        kind
        for kind, flag in (
            ("image", "images"),
            ("video", "videos"),
            ("frame", "frames"),
            ("link", "links"),
            ("casts", "casts"),
        )
        if args.get(flag)
    ]

    def in_domain(url: str) -> bool:
        return not domain or domain in url

    found_types: list[str] = []
    found_urls: list[str] = []

    quoted = [embed.cast_id.hash for embed in cast.embeds if embed.cast_id is not None]
    if quoted:
        found_types.append("casts")
        found_urls.extend(quoted)

    urls = [embed.url for embed in cast.embeds if embed.url]
    images = [url for url in urls if in_domain(url) and _is_image(url)]
    if images:
        found_types.append("image")
        found_urls.extend(images)

    videos = [url for url in urls if in_domain(url) and _is_video(url)]
    if videos:
        found_types.append("video")
        found_urls.extend(videos)

    if args.get("links") or args.get("frames"):
        hydrated = await ctx.providers.neynar.fetch_cast(cast.hash)
        frames = [frame.frames_url for frame in hydrated.frames if in_domain(frame.frames_url)]
        if frames:
            found_types.append("frame")
            found_urls.extend(frames)

        remaining = [
            embed.url
            for embed in hydrated.embeds
            if embed.url and in_domain(embed.url) and embed.url not in found_urls
        ]
        if remaining:
            found_types.append("link")
            found_urls.extend(remaining)

    violating = [kind for kind in wanted if kind in found_types]
    domain_message = f" from {domain}" if domain else ""
    if violating:
        return CheckResult(True, f"Cast contains {', '.join(violating)}{domain_message}")
    return CheckResult(False, f"Cast doesn't contain {', '.join(wanted)}{domain_message}")
