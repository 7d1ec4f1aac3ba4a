"""Message bodies for scheduled deliveries."""

import random
from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from ajaas.schemas import Schedule


@dataclass(frozen=True)
class MessageTemplate:
    type: str
    template: str
    tough_love: bool = False


TEMPLATES: tuple[MessageTemplate, ...] = (
    # Animal/nature similes
    MessageTemplate("animal", "You've navigated this week like a bear navigates its way to honey, :name."),
    MessageTemplate("animal", "You attacked those tasks like a caffeinated squirrel at a bird feeder, :name."),
    MessageTemplate("animal", "You herded those deadlines like a border collie at a sheep convention, :name."),
    MessageTemplate("animal", "You carried this week like a mother duck crossing a highway, :name. Fearlessly."),
    # Absurdist
    MessageTemplate("absurd", "If productivity were an Olympic sport, you'd be disqualified for being suspiciously good, :name."),
    MessageTemplate("absurd", "You crushed it so hard this week, :name, geologists want to study the impact site."),
    MessageTemplate("absurd", "NASA called, :name. They want to study your trajectory because it only goes up."),
    # Self-aware
    MessageTemplate("meta", "This automated message thinks you're great, :name. It's never wrong."),
    MessageTemplate("meta", "I'm just an API, :name, but even I can see you're crushing it."),
    MessageTemplate("meta", "This compliment was generated at 200 OK, :name. No errors detected in your performance."),
    # Unexpected compliments
    MessageTemplate("unexpected", "You didn't just meet expectations, :name. You took expectations out for dinner and showed them a lovely time."),
    MessageTemplate("unexpected", "You brought the same energy to Monday that most people save for Friday, :name."),
    MessageTemplate("unexpected", "Somewhere out there, a motivational poster is quoting you, :name."),
    # Tough love
    MessageTemplate("toughLove", "Solid work, :name. Not legendary, but solid. Take 2 days off and come back hungry.", True),
    MessageTemplate("toughLove", "You survived, :name. That's the bar, and you cleared it. Barely. Rest up.", True),
    MessageTemplate("toughLove", "Adequate, :name. The word you're looking for is adequate. Now go away for 2 days.", True),
)


class MessageService:
    """Formats compliment messages for a recipient."""

    def __init__(self, include_tough_love: bool = True, rng: random.Random | None = None):
        self.include_tough_love = include_tough_love
        self._rng = rng or random.Random()

    def _available_templates(self) -> list[MessageTemplate]:
        return [t for t in TEMPLATES if self.include_tough_love or not t.tough_love]

    @staticmethod
    def _format(template: str, name: str, from_name: str | None = None) -> str:
        message = template.replace(":name", name)
        if from_name:
            message += f" - {from_name}"
        return message

    def get_simple_message(self, name: str, from_name: str | None = None) -> str:
        return self._format("Awesome job, :name!", name, from_name)

    def get_weekly_message(
        self, name: str, from_name: str | None = None, tz: str | None = None, now: datetime | None = None
    ) -> str:
        days_off = self.calculate_days_off(tz, now)
        return self._format(
            f"Awesome job this week, :name. Take the next {days_off} days off.", name, from_name
        )

    def get_random_message(self, name: str, from_name: str | None = None) -> str:
        template = self._rng.choice(self._available_templates())
        return self._format(template.template, name, from_name)

    def get_message_by_type(
        self, message_type: str, name: str, from_name: str | None = None
    ) -> str | None:
        """Return a message of the given type, or None if the type is unknown or disabled."""
        candidates = [t for t in self._available_templates() if t.type == message_type]
        if not candidates:
            return None
        return self._format(self._rng.choice(candidates).template, name, from_name)

    def get_available_types(self) -> list[str]:
        return list(dict.fromkeys(t.type for t in self._available_templates()))

    @staticmethod
    def calculate_days_off(tz: str | None = None, now: datetime | None = None) -> int:
        """Friday gets the weekend, Thursday a long weekend, weekends a day."""
        current = now or datetime.now(UTC)
        if tz:
            current = current.astimezone(ZoneInfo(tz))
        weekday = current.weekday()
        if weekday == 4:
            return 2
        if weekday == 3:
            return 3
        if weekday in (5, 6):
            return 1
        return 2

    def for_schedule(self, schedule: Schedule) -> str:
        """Produce the body for a scheduled delivery, selected by its endpoint."""
        name, from_name = schedule.recipient, schedule.from_name
        if schedule.endpoint == "weekly":
            return self.get_weekly_message(name, from_name)
        if schedule.endpoint == "random":
            return self.get_random_message(name, from_name)
        if schedule.endpoint == "message":
            if schedule.message_type:
                message = self.get_message_by_type(schedule.message_type, name, from_name)
                if message is not None:
                    return message
            return self.get_random_message(name, from_name)
        # "awesome" and unknown endpoints
        return self.get_simple_message(name, from_name)
