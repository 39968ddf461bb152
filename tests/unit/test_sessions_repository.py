from datetime import timedelta

from profrate.db import models
from profrate.db.repositories import sessions as sessions_repo


def test_create_and_read_session(db_session):
    row = sessions_repo.create_session(db_session, {"user_id": "u-1"}, ttl_seconds=60)
    loaded = sessions_repo.get_session(db_session, row.sid)
    assert loaded is not None
    assert loaded.sess == {"user_id": "u-1"}


def test_expired_session_is_ignored_and_pruned(db_session):
    row = sessions_repo.create_session(db_session, {}, ttl_seconds=60)
    row.expire = models.now_utc() - timedelta(seconds=1)
    db_session.commit()

    assert sessions_repo.get_session(db_session, row.sid) is None
    assert sessions_repo.prune_expired_sessions(db_session) == 1
    assert db_session.query(models.UserSession).count() == 0


def test_save_session_replaces_body(db_session):
    row = sessions_repo.create_session(db_session, {"a": 1}, ttl_seconds=60)
    sessions_repo.save_session(db_session, row, {"b": 2}, ttl_seconds=60)
    db_session.expire_all()
    assert sessions_repo.get_session(db_session, row.sid).sess == {"b": 2}


def test_destroy_user_sessions_spares_current(db_session):
    keep = sessions_repo.create_session(db_session, {"user_id": "u-1"}, 60)
    sessions_repo.create_session(db_session, {"user_id": "u-1"}, 60)
    other = sessions_repo.create_session(db_session, {"user_id": "u-2"}, 60)

    removed = sessions_repo.destroy_user_sessions(db_session, "u-1", except_sid=keep.sid)
    assert removed == 1
    remaining = {r.sid for r in db_session.query(models.UserSession).all()}
    assert remaining == {keep.sid, other.sid}



def test_destroy_user_sessions_leaves_other_users_alone(db_session):
    mine = [sessions_repo.create_session(db_session, {"user_id": "u-1"}, 60) for _ in range(3)]
    expired = mine[0]
    expired.expire = models.now_utc() - timedelta(minutes=1)
    db_session.commit()
    others = {
        sessions_repo.create_session(db_session, {"user_id": "u-2"}, 60).sid,
        sessions_repo.create_session(db_session, {"user_id": "u-10"}, 60).sid,
        sessions_repo.create_session(db_session, {}, 60).sid,
    }

    assert sessions_repo.destroy_user_sessions(db_session, "u-1") == 3
    db_session.expire_all()
    assert {r.sid for r in db_session.query(models.UserSession).all()} == others
    assert sessions_repo.destroy_user_sessions(db_session, "u-1") == 0

def test_destroy_session_handles_missing_sid(db_session):
    assert sessions_repo.destroy_session(db_session, None) is False
    assert sessions_repo.destroy_session(db_session, "nope") is False
