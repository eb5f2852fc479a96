"""Attack style classification for completed words.

The style is flavour for the combat log and for narrative subscribers; it
does not change the damage an attack deals.
"""
from ..core.data import AttackStyle


ATTACK_STYLE_NAMES = {
    AttackStyle.PRECISION: "PRECISION STRIKE",
    AttackStyle.FLURRY: "FLURRY",
    AttackStyle.DELIBERATE: "Heavy Blow",
    AttackStyle.FRANTIC: "Wild Swing",
    AttackStyle.STANDARD: "Attack",
}

ATTACK_STYLE_ICONS = {
    AttackStyle.PRECISION: "⚔",
    AttackStyle.FLURRY: "⚡",
    AttackStyle.DELIBERATE: "🗡",
    AttackStyle.FRANTIC: "💥",
    AttackStyle.STANDARD: "→",
}


def classify_attack(wpm: float, accuracy: float) -> AttackStyle:
    """Pick the attack style for a word typed at `wpm` with `accuracy` in [0, 1]."""
    if accuracy >= 0.99 and wpm >= 80.0:
        return AttackStyle.PRECISION
    if accuracy >= 0.95 and wpm >= 100.0:
        return AttackStyle.FLURRY
    if wpm < 40.0 and accuracy >= 0.95:
        return AttackStyle.DELIBERATE
    if wpm >= 70.0 and accuracy < 0.85:
        return AttackStyle.FRANTIC
    return AttackStyle.STANDARD


def format_attack_message(style: AttackStyle, damage: int, perfect: bool) -> str:
    """Combat log line for a resolved attack."""
    icon = ATTACK_STYLE_ICONS[style]
    name = ATTACK_STYLE_NAMES[style]

    if perfect:
        return f"{icon} PERFECT {name}! {damage} damage!"
    if style in (AttackStyle.PRECISION, AttackStyle.FLURRY):
        return f"{icon} {name}! {damage} damage!"
    if style == AttackStyle.DELIBERATE:
        return f"{icon} {name}. {damage} damage."
    if style == AttackStyle.FRANTIC:
        return f"{icon} {name}! {damage} damage."
    return f"You deal {damage} damage."
