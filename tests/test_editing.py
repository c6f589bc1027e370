import pytest

from emigration.datasets import SEX
from emigration.editing import EditSession
from emigration.errors import EditLockError, StoreError, ValidationError


@pytest.fixture()
def seeded(sex_service):
    first = sex_service.add({"year": "2019", "male": "10", "female": "20"})
    second = sex_service.add({"year": "2020", "male": "30", "female": "40"})
    return sex_service, first, second


def _record(service, doc_id):
    return next(r for r in service.load() if r["id"] == doc_id)


def test_starts_viewing():
    session = EditSession()
    assert not session.is_editing
    assert not session.is_locked("anything")


def test_begin_fills_form_as_text(seeded):
    service, first, _ = seeded
    session = EditSession()
    session.begin(_record(service, first), SEX.fields)
    assert session.editing_id == first
    assert session.form == {"year": "2019", "male": "10", "female": "20"}


def test_begin_defaults_missing_values_to_zero():
    session = EditSession()
    session.begin({"id": "x", "year": 2019}, SEX.fields)
    assert session.form == {"year": "2019", "male": "0", "female": "0"}


def test_only_one_row_at_a_time(seeded):
    service, first, second = seeded
    session = EditSession()
    session.begin(_record(service, first), SEX.fields)
    assert session.is_locked(second)
    assert not session.is_locked(first)
    with pytest.raises(EditLockError):
        session.begin(_record(service, second), SEX.fields)
    assert session.editing_id == first


def test_reopening_same_row_is_allowed(seeded):
    service, first, _ = seeded
    session = EditSession()
    session.begin(_record(service, first), SEX.fields)
    session.begin(_record(service, first), SEX.fields)
    assert session.editing_id == first


def test_cancel_leaves_store_unchanged(seeded):
    service, first, _ = seeded
    before = service.load()
    session = EditSession()
    session.begin(_record(service, first), SEX.fields)
    session.set_field("male", "999")
    session.cancel()
    assert not session.is_editing
    assert session.form == {}
    assert service.load() == before


def test_save_overwrites_record(seeded):
    service, first, _ = seeded
    session = EditSession()
    session.begin(_record(service, first), SEX.fields)
    session.set_field("male", "11")
    session.set_field("female", "")
    saved = session.save(service)
    assert saved == {"year": 2019, "male": 11, "female": 0}
    assert _record(service, first) == {"id": first, "year": 2019, "male": 11, "female": 0}
    assert not session.is_editing


def test_failed_save_keeps_session_open(seeded):
    service, first, _ = seeded
    session = EditSession()
    session.begin(_record(service, first), SEX.fields)
    session.set_field("year", "")
    with pytest.raises(ValidationError):
        session.save(service)
    assert session.editing_id == first

    service.delete(first)
    session.set_field("year", "2019")
    with pytest.raises(StoreError):
        session.save(service)
    assert session.is_editing


def test_set_field_and_save_need_an_open_row(sex_service):
    session = EditSession()
    with pytest.raises(ValidationError):
        session.set_field("male", "1")
    with pytest.raises(ValidationError):
        session.save(sex_service)


def test_to_record_validates_form(seeded):
    service, first, _ = seeded
    session = EditSession()
    session.begin(_record(service, first), SEX.fields)
    session.set_field("female", "-5")
    assert session.to_record(SEX) == {"year": 2019, "male": 10, "female": 0}


def test_delete_requires_confirmation(seeded):
    service, first, _ = seeded
    session = EditSession()
    with pytest.raises(ValidationError):
        session.delete(service, first, confirmed=False)
    assert len(service.load()) == 2
    session.delete(service, first, confirmed=True)
    assert [r["id"] for r in service.load()] != [first]
    assert len(service.load()) == 1


def test_deleting_the_open_row_closes_it(seeded):
    service, first, second = seeded
    session = EditSession()
    session.begin(_record(service, first), SEX.fields)
    session.delete(service, second, confirmed=True)
    assert session.editing_id == first
    session.delete(service, first, confirmed=True)
    assert not session.is_editing
