import pytest

from socialnet.database import paginate
from socialnet.models import User


@pytest.fixture
def db(session_local):
    session = session_local()
    for index in range(7):
        session.add(
            User(
                name=f"User{index}",
                last_name="Tester",
                nick=f"user{index}",
                email=f"user{index}@mail.com",
                password="x",
            )
        )
    session.commit()
    yield session
    session.close()


def test_paginate_counts_pages(db):
    page = paginate(db.query(User).order_by(User.nick), page=1, limit=3)
    assert page.total == 7
    assert page.pages == 3
    assert [user.nick for user in page.items] == ["user0", "user1", "user2"]


def test_paginate_last_and_past_last_page(db):
    query = db.query(User).order_by(User.nick)
    assert [user.nick for user in paginate(query, page=3, limit=3).items] == ["user6"]
    assert paginate(query, page=4, limit=3).items == []


def test_paginate_rejects_non_positive_values(db):
    with pytest.raises(ValueError):
        paginate(db.query(User), page=0, limit=3)
    with pytest.raises(ValueError):
        paginate(db.query(User), page=1, limit=0)


def test_new_users_get_defaults(db):
    user = db.query(User).filter(User.nick == "user0").one()
    assert len(user.id) == 32
    assert user.role == "role_user"
    assert user.created_at is not None
    assert user.image is None
