"""Birthday announcement messages."""

from __future__ import annotations

import random
from typing import Protocol

# {mention} is the member mention, {level} is the local year minus 1900
BIRTHDAY_MESSAGES: tuple[str, ...] = (
    "🎂 Happy Birthday {mention}! You're not old, you're just well-seasoned!",
    "🎈 {mention} has leveled up IRL! +1 year, +10 wisdom, -5 metabolism",
    "🎉 Happy Birthday {mention}! You're officially vintage now 🍷",
    "✨ {mention} just hit a new personal record for staying alive! Congrats! 🏆",
    "🎂 Happy Birthday {mention}! Don't worry, you don't look a day over whatever age makes you feel good",
    "🎊 {mention} spawned into this world on this day! /played is getting concerning...",
    "🎈 It's {mention}'s birthday! May your repair bills be low and your parses be high! ⚔️",
    "🎂 {mention} is another year closer to becoming a raid boss! Happy Birthday!",
    "🎉 Happy Birthday {mention}! You've unlocked the achievement: [Survived Another Year]",
    "✨ {mention} has entered the chat... a year older! Happy Birthday!",
    "🥳 Happy Birthday {mention}! Remember: age is just a number... a really big number",
    "🎊 Ding! {mention} leveled up to Year {level}! (jk we don't know your age)",
    "🎂 Happy Birthday {mention}! May your pulls be legendary and your wipes be few! 🐉",
    "🎈 {mention} has been alive for another revolution around the sun! Achievement unlocked! 🌍",
    "🥳 Happy Birthday {mention}! You're not getting older, you're increasing in value!",
    "🎉 {mention} popped out of the character creation screen on this day! Happy Birthday!",
    "✨ Happy Birthday {mention}! Time to eat cake and pretend calories don't exist! 🍰",
    "🎂 {mention} is celebrating their annual respawn day! Happy Birthday!",
    "🥳 {mention}'s mom completed a mythic+ delivery on this day! Happy Birthday! 👶",
    "🎊 Happy Birthday {mention}! The loot gods smile upon you today... probably 🎰",
)


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def pick_message(
    discord_id: int,
    year: int,
    rng: RandomSource | None = None,
    pool: tuple[str, ...] = BIRTHDAY_MESSAGES,
) -> str:
    """Pick and render one birthday message for ``discord_id``."""
    source = rng if rng is not None else random
    template = pool[source.randrange(len(pool))]
    return template.format(mention=f"<@{discord_id}>", level=year - 1900)
