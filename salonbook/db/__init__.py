from salonbook.db.session import SessionLocal, engine, get_db, get_session_factory

__all__ = ["engine", "SessionLocal", "get_db", "get_session_factory"]
