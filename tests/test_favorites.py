import psycopg

from cropmarket.repository import FavoriteSellerRepo


def test_in_memory_add_remove():
    repo = FavoriteSellerRepo(use_db=False)
    assert repo.uses_database is False

    assert repo.add_favorite("buyer-1", "farmer-a") is True
    assert repo.add_favorite("buyer-1", "farmer-a") is False
    repo.add_favorite("buyer-1", "farmer-c")
    repo.add_favorite("buyer-1", "farmer-b")

    # Most recent first, as the Postgres path orders by created_at.
    assert repo.get_favorites("buyer-1") == ["farmer-b", "farmer-c", "farmer-a"]
    assert repo.get_favorites("buyer-2") == []
    assert repo.is_favorite("buyer-1", "farmer-a")

    assert repo.remove_favorite("buyer-1", "farmer-c") is True
    assert repo.remove_favorite("buyer-1", "farmer-c") is False
    assert repo.get_favorites("buyer-1") == ["farmer-b", "farmer-a"]


def test_toggle():
    repo = FavoriteSellerRepo(use_db=False)
    assert repo.toggle_favorite("buyer-1", "farmer-a") is True
    assert repo.toggle_favorite("buyer-1", "farmer-a") is False
    assert repo.get_favorites("buyer-1") == []


def test_blank_ids_are_ignored():
    repo = FavoriteSellerRepo(use_db=False)
    assert repo.add_favorite("", "farmer-a") is False
    assert repo.is_favorite("buyer-1", "") is False
    assert repo.get_favorites("") == []


def test_unreachable_database_falls_back_to_memory(monkeypatch):
    def refuse(*args, **kwargs):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(psycopg, "connect", refuse)
    repo = FavoriteSellerRepo("postgresql://localhost:1/none")

    assert repo.uses_database is False
    repo.add_favorite("buyer-1", "farmer-a")
    assert repo.get_favorites("buyer-1") == ["farmer-a"]
