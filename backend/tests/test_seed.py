from sqlmodel import Session, func, select

import seed
from config import DEMO_EMAIL, DEMO_PASSWORD
from models import SyllabusItem, Task, User, UserPreferences
from security import verify_password


def count(db, model):
    return db.exec(select(func.count()).select_from(model)).one()


def test_seed_is_idempotent(engine):
    seed.setup_database(engine)
    seed.setup_database(engine)

    with Session(engine) as db:
        assert count(db, User) == 1
        assert count(db, UserPreferences) == 1
        assert count(db, Task) == 3
        assert count(db, SyllabusItem) == 3
        user = db.exec(select(User).where(User.email == DEMO_EMAIL)).one()
        assert verify_password(DEMO_PASSWORD, user.password_hash)


def test_reset_drops_existing_rows(engine, student):
    seed.setup_database(engine)
    with Session(engine) as db:
        assert count(db, User) == 2
        demo = db.exec(select(User).where(User.email == DEMO_EMAIL)).one()
        db.delete(db.exec(select(Task).where(Task.user_id == demo.id)).first())
        db.commit()

    seed.setup_database(engine, reset=True)

    with Session(engine) as db:
        assert [u.email for u in db.exec(select(User)).all()] == [DEMO_EMAIL]
        assert count(db, Task) == 3
        assert count(db, SyllabusItem) == 3


def test_main_uses_configured_engine(engine, monkeypatch, capsys):
    monkeypatch.setattr(seed, "engine", engine)
    monkeypatch.setattr(seed, "setup_logging", lambda: None)

    seed.main([])
    seed.main(["--reset"])

    assert DEMO_EMAIL in capsys.readouterr().out
    with Session(engine) as db:
        assert count(db, User) == 1
        assert count(db, Task) == 3
