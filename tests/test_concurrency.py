import threading
import time
from contextlib import nullcontext

import pytest

import ordering
from app import create_app
from conftest import new_sheet
from storage import MemStorage


@pytest.fixture(params=["memory", "sql"])
def shared_store(request, tmp_path):
    """A store plus the context each worker thread must enter to use it."""
    if request.param == "memory":
        yield MemStorage(), nullcontext
        return
    # file-backed so every thread gets its own connection
    app = create_app({
        "TESTING": True,
        "STORAGE_BACKEND": "sql",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'sheets.db'}",
        "SEED_DEMO_DATA": False,
    })
    with app.app_context():
        yield app.extensions["storage"], app.app_context


def run_threads(context, jobs):
    errors = []

    def worker(job):
        try:
            with context():
                job()
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(job,)) for job in jobs]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    assert errors == []


def orders_of(store, setlist_id):
    return sorted(item.order for item, _ in store.get_setlist_items(setlist_id))


def test_parallel_appends_get_distinct_orders(shared_store, monkeypatch):
    store, context = shared_store
    setlist_id = store.create_setlist(name="Rush hour").id
    sheet_ids = [new_sheet(store, title=f"S{i}").id for i in range(4)]

    real_next_order = ordering.next_order

    def slow_next_order(items):
        n = real_next_order(items)
        time.sleep(0.05)  # widen the read-then-write window
        return n

    monkeypatch.setattr(ordering, "next_order", slow_next_order)

    run_threads(context, [lambda sid=sid: store.add_item(setlist_id, sid) for sid in sheet_ids])

    assert orders_of(store, setlist_id) == [0, 1, 2, 3]


def test_mixed_parallel_edits_keep_setlist_dense(shared_store):
    store, context = shared_store
    setlist_id = store.create_setlist(name="Festival").id
    sheet_ids = [new_sheet(store, title=f"S{i}").id for i in range(12)]

    def job(i, sid):
        def run():
            store.add_item(setlist_id, sid)
            store.reorder_item(setlist_id, sid, 0)
            if i % 3 == 0:
                store.remove_item(setlist_id, sid)
        return run

    run_threads(context, [job(i, sid) for i, sid in enumerate(sheet_ids)])

    assert orders_of(store, setlist_id) == list(range(8))


def test_parallel_settings_first_access_creates_one_row(shared_store):
    store, context = shared_store
    seen = []
    lock = threading.Lock()

    def read():
        settings_id = store.get_or_create_settings(1).id
        with lock:
            seen.append(settings_id)

    run_threads(context, [read for _ in range(8)])

    assert len(set(seen)) == 1
