import pytest

import crud


@pytest.mark.asyncio
async def test_travel_patch_lifecycle(db):
    await crud.upsert_travel_patch(db, "Krk, Croatia", title="Krk", from_date="2024-05-01 06:00")
    row = await crud.upsert_travel_patch(db, "Krk, Croatia", title="Insel Krk",
                                         from_date="2024-05-01 06:00", to_date="2024-05-04T18:00:00Z")

    assert len(await crud.get_travel_patches(db)) == 1
    assert crud.travel_patch_dict(row) == {
        "id": row.id,
        "addressKey": "Krk, Croatia",
        "title": "Insel Krk",
        "fromDate": "2024-05-01T06:00:00Z",
        "toDate": "2024-05-04T18:00:00Z",
        "exclude": False,
    }

    assert await crud.delete_travel_patch(db, "Krk, Croatia") is True
    assert await crud.delete_travel_patch(db, "Krk, Croatia") is False


@pytest.mark.asyncio
async def test_patch_map_leaves_out_empty_fields(db):
    await crud.upsert_travel_patch(db, "Krk, Croatia", title="Krk")
    await crud.upsert_travel_patch(db, "Bled, Slovenia", exclude=True)
    await crud.upsert_travel_patch(db, "Nothing here")

    assert await crud.load_patch_map(db) == {
        "Krk, Croatia": {"title": "Krk"},
        "Bled, Slovenia": {"exclude": True},
    }


@pytest.mark.asyncio
async def test_standstill_adjustments(db):
    await crud.upsert_standstill_adjustment(db, "marker4514", -30, 0)
    await crud.upsert_standstill_adjustment(db, "marker4514", -45, 20)
    await crud.upsert_standstill_adjustment(db, "marker4614", 10, None)

    adjustments = await crud.get_standstill_adjustments(db)
    assert set(adjustments) == {"marker4514", "marker4614"}
    assert crud.adjustment_dict(adjustments["marker4514"]) == {
        "standstill_key": "marker4514",
        "start_adjustment_minutes": -45,
        "end_adjustment_minutes": 20,
    }
    assert adjustments["marker4614"].end_adjustment_minutes == 0

    assert await crud.delete_standstill_adjustment(db, "marker4614") is True
    assert await crud.get_standstill_adjustment(db, "marker4614") is None


@pytest.mark.asyncio
async def test_manual_pois(db):
    poi_id = await crud.upsert_manual_poi(db, "poi-1", 45.0, 14.0, "2024-05-02T10:00:00Z", 7, "Krk", "Croatia")
    same_id = await crud.upsert_manual_poi(db, "poi-1", 45.1, 14.1, "2024-05-02T10:00:00Z", 7, "Krk", "Croatia")
    await crud.upsert_manual_poi(db, "poi-2", 46.0, 14.0, "2024-05-03T10:00:00Z", 8)

    assert poi_id == same_id
    assert [p.poi_key for p in await crud.get_manual_pois(db)] == ["poi-2", "poi-1"]

    mine = await crud.get_manual_pois(db, device_id=7)
    assert len(mine) == 1
    assert crud.manual_poi_dict(mine[0])["latitude"] == 45.1

    assert await crud.delete_manual_poi(db, poi_id) is True
    assert await crud.delete_manual_poi(db, poi_id) is False
