import random
from collections.abc import Callable, Sequence

from reengagement.models.domain.reengagement_domain import Chat, NotificationContent

NOTIFICATION_HEADING = "We miss you!"
NOTIFICATION_TYPE = "re_engagement"

MessageTemplate = Callable[[str], str]

NOTIFICATION_TEMPLATES: tuple[MessageTemplate, ...] = (
    lambda name: f"Continue your conversation with {name}",
    lambda name: f"{name} is waiting for you!",
    lambda name: f"It's been a while! {name} misses you",
    lambda name: f"Pick up where you left off with {name}",
)


class MessageComposer:
    """Renders a randomly chosen template for the selected chat."""

    def __init__(
        self,
        rng: random.Random | None = None,
        templates: Sequence[MessageTemplate] = NOTIFICATION_TEMPLATES,
    ):
        if not templates:
            raise ValueError("At least one notification template is required")
        self.rng = rng or random.Random()
        self.templates = tuple(templates)

    def compose(self, chat: Chat) -> NotificationContent:
        template = self.templates[self.rng.randrange(len(self.templates))]
        return NotificationContent(
            heading=NOTIFICATION_HEADING,
            body=template(chat.name),
            data={
                "type": NOTIFICATION_TYPE,
                "chat_id": chat.id,
                "chat_name": chat.name,
            },
        )
