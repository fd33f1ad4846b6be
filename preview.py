from sqlmodel import create_engine
import argparse

from support_chat.config import Settings
from support_chat.models import MessageRole
from support_chat.store import ChatStore


def render(store: ChatStore, user_id: str, limit: int = 5) -> str:
    lines = []

    profile = store.get_profile(user_id)
    if profile is not None:
        lines.append(f"{profile.full_name or user_id} ({profile.grade_level or 'no grade level'})")
        if profile.subjects:
            lines.append("Subjects: " + ", ".join(profile.subjects))
    else:
        lines.append(f"{user_id} (no profile)")
    lines.append("")

    for chat_session in store.recent_sessions(user_id, limit=limit):
        records = store.list_messages(chat_session.id, user_id=user_id)
        status = ""
        if records and records[-1].role is MessageRole.USER:
            status = " [awaiting reply]"
        lines.append(f"{chat_session.title} <{chat_session.support_type.value}> {chat_session.id}{status}")
        for record in records:
            lines.append(f"  {record.role.value}: {record.content}")
        lines.append("------------")

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Print a user's recent chat sessions")
    parser.add_argument("user_id")
    parser.add_argument("--limit", type=int, default=5)
    args = parser.parse_args()

    settings = Settings.from_env(require_api_key=False)
    store = ChatStore(create_engine(settings.database_url))
    store.create_tables()
    print(render(store, args.user_id, limit=args.limit))


if __name__ == "__main__":
    main()
