from dataclasses import dataclass

CONTENT = "content"


@dataclass(frozen=True)
class CreatureState:
    label: str
    intensity: float = 0.0
    need: str | None = None

    @property
    def is_content(self):
        return self.need is None

    def stage(self, levels: int) -> int:
        """Bucket intensity into ``0..levels-1``, for animation variants like sad/0, sad/1."""
        if levels <= 1:
            return 0
        return min(levels - 1, int(self.intensity * levels))


def want_label(need: str) -> str:
    return f"want/{need}"


def intensity(need) -> float:
    span = need.critical_threshold - need.min_level
    return max(0.0, min(1.0, (need.critical_threshold - need.level) / span))


def derive(needs) -> CreatureState:
    """Pick the most critical need; ties go to the lower priority value, then config order."""
    critical = [(n.deficit, n.priority, i, n) for i, n in enumerate(needs) if n.is_critical]
    if not critical:
        return CreatureState(CONTENT)
    *_, worst = min(critical, key=lambda c: c[:3])
    return CreatureState(want_label(worst.name), intensity(worst), worst.name)
