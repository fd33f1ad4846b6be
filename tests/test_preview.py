import sys

from sqlmodel import Session

from preview import main, render
from support_chat.models import MessageRole, Profile, SupportType


def test_render_lists_sessions_and_transcripts(store, engine):
    with Session(engine) as session:
        session.add(Profile(user_id="user-1", full_name="Ada", grade_level="10", subjects=["Math"]))
        session.commit()

    answered = store.create_session("user-1", SupportType.TUTORING, "AI Tutoring Session - 1/1/2026")
    store.add_message(answered.id, MessageRole.USER, "What is 2+2?")
    store.add_message(answered.id, MessageRole.ASSISTANT, "4")
    dangling = store.create_session("user-1", SupportType.GENERAL, "General Support Session - 1/2/2026")
    store.add_message(dangling.id, MessageRole.USER, "Anyone there?")

    output = render(store, "user-1")

    assert output.startswith("Ada (10)")
    assert "Subjects: Math" in output
    assert "  user: What is 2+2?" in output
    assert "  assistant: 4" in output
    assert f"<general> {dangling.id} [awaiting reply]" in output
    assert f"<tutoring> {answered.id}\n" in output


def test_render_without_profile(store):
    assert render(store, "ghost").startswith("ghost (no profile)")


def test_main_on_fresh_database(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("support_chat.config.load_dotenv", lambda: None)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'fresh.db'}")
    monkeypatch.setattr(sys, "argv", ["preview.py", "user-1"])

    main()

    assert "user-1 (no profile)" in capsys.readouterr().out
