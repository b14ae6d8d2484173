"""
Batch event propagation - brooding replay, earliest laying start, timeline mirror
"""
from types import SimpleNamespace

from chicken_manager.services import batch_events as propagation
from chicken_manager.services.batch_events import mirror_fields, replay_brooding_count


async def _batch(client, name="Coop A"):
    r = await client.post(
        "/api/flock-batches/",
        json={"batchName": name, "breed": "Orpington", "acquisitionDate": "2024-01-10", "initialCount": 6,
              "type": "hens", "ageAtAcquisition": "adult", "source": "Hatchery", "hensCount": 6},
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def _event(client, batch_id, type_, date, **extra):
    body = {"batchId": batch_id, "date": date, "type": type_, "description": f"{type_} on {date}"}
    body.update(extra)
    r = await client.post("/api/batch-events/", json=body)
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def _get_batch(client, batch_id):
    r = await client.get("/api/flock-batches/", params={"batchId": batch_id})
    return r.json()["data"]


async def _timeline(client):
    return (await client.get("/api/flock-events/")).json()["data"]


# ===================== REPLAY =====================


def _ev(type_, count=None):
    return SimpleNamespace(type=type_, affected_count=count)


class TestReplay:

    def test_starts_minus_stops(self):
        events = [_ev("brooding_start", 3), _ev("brooding_start"), _ev("brooding_stop", 2)]
        assert replay_brooding_count(events) == 2

    def test_never_negative(self):
        assert replay_brooding_count([_ev("brooding_stop", 4), _ev("brooding_start", 1)]) == 0

    def test_ignores_other_types(self):
        assert replay_brooding_count([_ev("vaccination", 5), _ev("brooding_start", 2)]) == 2

    def test_empty(self):
        assert replay_brooding_count([]) == 0


class TestMirrorFields:

    def test_mapped_type(self):
        event = SimpleNamespace(type="vaccination", description="Marek's", notes=None, affected_count=0, date=None)
        fields = mirror_fields(event, "Coop A")
        assert fields["type"] == "other"
        assert fields["description"] == "Vaccination administered to Coop A batch"
        assert fields["notes"] == "From Coop A batch"
        assert fields["affected_birds"] is None

    def test_unmapped_type_uses_description(self):
        event = SimpleNamespace(type="flock_added", description="Two pullets joined", notes="quarantined",
                                affected_count=2, date=None)
        fields = mirror_fields(event, "Coop A")
        assert fields["type"] == "other"
        assert fields["description"] == "Coop A: Two pullets joined"
        assert fields["notes"] == "From Coop A batch: quarantined"
        assert fields["affected_birds"] == 2


# ===================== ENDPOINTS =====================


async def test_batch_id_required(client):
    r = await client.get("/api/batch-events/")
    assert r.status_code == 400


async def test_brooding_count_follows_events(client):
    batch = await _batch(client)
    await _event(client, batch["id"], "brooding_start", "2024-03-01", affectedCount=3)
    stop = await _event(client, batch["id"], "brooding_stop", "2024-03-05", affectedCount=1)
    assert (await _get_batch(client, batch["id"]))["brooding_count"] == 2

    # Deleting an event gives the same count as never having created it
    r = await client.request("DELETE", "/api/batch-events/", json={"eventId": stop["id"]})
    assert r.status_code == 200
    assert (await _get_batch(client, batch["id"]))["brooding_count"] == 3


async def test_brooding_count_recomputed_on_type_change(client):
    batch = await _batch(client)
    event = await _event(client, batch["id"], "brooding_start", "2024-03-01", affectedCount=2)
    assert (await _get_batch(client, batch["id"]))["brooding_count"] == 2

    r = await client.put("/api/batch-events/", json={"eventId": event["id"], "type": "health_check"})
    assert r.status_code == 200
    assert (await _get_batch(client, batch["id"]))["brooding_count"] == 0


async def test_laying_start_earliest_wins(client):
    batch = await _batch(client)
    later = await _event(client, batch["id"], "laying_start", "2024-05-01")
    assert (await _get_batch(client, batch["id"]))["actual_laying_start_date"] == "2024-05-01"

    earlier = await _event(client, batch["id"], "laying_start", "2024-04-15")
    await _event(client, batch["id"], "laying_start", "2024-06-01")
    assert (await _get_batch(client, batch["id"]))["actual_laying_start_date"] == "2024-04-15"

    await client.request("DELETE", "/api/batch-events/", json={"eventId": earlier["id"]})
    assert (await _get_batch(client, batch["id"]))["actual_laying_start_date"] == "2024-05-01"

    r = await client.put("/api/batch-events/", json={"eventId": later["id"], "date": "2024-07-01"})
    assert r.status_code == 200
    assert (await _get_batch(client, batch["id"]))["actual_laying_start_date"] == "2024-06-01"


async def test_laying_start_cleared_when_none_remain(client):
    batch = await _batch(client)
    event = await _event(client, batch["id"], "laying_start", "2024-05-01")
    await client.request("DELETE", "/api/batch-events/", json={"eventId": event["id"]})
    assert (await _get_batch(client, batch["id"]))["actual_laying_start_date"] is None


async def test_mirror_created_updated_and_removed(client):
    batch = await _batch(client)
    event = await _event(client, batch["id"], "vaccination", "2024-03-01", notes="Coccidiosis")

    timeline = await _timeline(client)
    assert len(timeline) == 1
    mirror = timeline[0]
    assert mirror["source_batch_event_id"] == event["id"]
    assert mirror["type"] == "other"
    assert mirror["description"] == "Vaccination administered to Coop A batch"
    assert mirror["notes"] == "From Coop A batch: Coccidiosis"

    await client.put("/api/batch-events/", json={"eventId": event["id"], "type": "laying_start"})
    timeline = await _timeline(client)
    assert len(timeline) == 1
    assert timeline[0]["id"] == mirror["id"]
    assert timeline[0]["type"] == "laying_start"
    assert timeline[0]["description"] == "Coop A batch started laying eggs"

    await client.request("DELETE", "/api/batch-events/", json={"eventId": event["id"]})
    assert await _timeline(client) == []


async def test_delete_removes_only_its_own_mirror(client):
    batch = await _batch(client)
    first = await _event(client, batch["id"], "health_check", "2024-03-01")
    await _event(client, batch["id"], "health_check", "2024-03-01")
    assert len(await _timeline(client)) == 2

    await client.request("DELETE", "/api/batch-events/", json={"eventId": first["id"]})
    assert len(await _timeline(client)) == 1


async def test_mirror_failure_keeps_event(client, monkeypatch):
    async def broken_mirror(db, event, batch):
        raise RuntimeError("timeline unavailable")

    monkeypatch.setattr(propagation, "sync_mirror", broken_mirror)

    batch = await _batch(client)
    event = await _event(client, batch["id"], "brooding_start", "2024-03-01", affectedCount=2)

    events = (await client.get("/api/batch-events/", params={"batchId": batch["id"]})).json()["data"]
    assert [e["id"] for e in events] == [event["id"]]
    assert (await _get_batch(client, batch["id"]))["brooding_count"] == 2
    assert await _timeline(client) == []


async def test_events_are_owner_scoped(client, other_client):
    batch = await _batch(client)
    event = await _event(client, batch["id"], "health_check", "2024-03-01")

    r = await other_client.post(
        "/api/batch-events/",
        json={"batchId": batch["id"], "date": "2024-03-02", "type": "other", "description": "x"},
    )
    assert r.status_code == 404

    r = await other_client.put("/api/batch-events/", json={"eventId": event["id"], "description": "hijack"})
    assert r.status_code == 404

    r = await other_client.request("DELETE", "/api/batch-events/", json={"eventId": event["id"]})
    assert r.status_code == 404

    r = await other_client.get("/api/batch-events/", params={"batchId": batch["id"]})
    assert r.json()["data"] == []
