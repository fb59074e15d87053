"""Tests for case views."""

import uuid

import pytest

from conftest import flash_notice, make_case, make_contact


@pytest.mark.asyncio
async def test_assigned_volunteer_views_case(db, client_for, test_org, volunteer):
    case = make_case(db, test_org, [volunteer])
    make_contact(db, case, creator=volunteer)

    async with client_for(volunteer) as client:
        response = await client.get(f"/cases/{case.id}/edit")

    assert response.status_code == 200
    body = response.json()
    assert body["case_number"] == case.case_number
    assert body["contact_count"] == 1
    assert [v["id"] for v in body["volunteers"]] == [str(volunteer.id)]


@pytest.mark.asyncio
async def test_unassigned_volunteer_is_redirected(db, client_for, test_org, volunteer, other_volunteer):
    case = make_case(db, test_org, [other_volunteer])

    async with client_for(volunteer) as client:
        response = await client.get(f"/cases/{case.id}/edit")

    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert flash_notice(response) == "Sorry, you are not authorized to perform this action."


@pytest.mark.asyncio
async def test_supervisor_cannot_view_other_org_case(db, client_for, supervisor, other_org):
    case = make_case(db, other_org)

    async with client_for(supervisor) as client:
        response = await client.get(f"/cases/{case.id}/edit")

    assert response.headers["location"] == "/"


@pytest.mark.asyncio
async def test_case_list_is_scoped(db, client_for, test_org, other_org, volunteer, other_volunteer, supervisor):
    mine = make_case(db, test_org, [volunteer])
    theirs = make_case(db, test_org, [other_volunteer])
    make_case(db, other_org)

    async with client_for(volunteer) as client:
        volunteer_ids = {row["id"] for row in (await client.get("/cases")).json()}
    async with client_for(supervisor) as client:
        supervisor_ids = {row["id"] for row in (await client.get("/cases")).json()}

    assert volunteer_ids == {str(mine.id)}
    assert supervisor_ids == {str(mine.id), str(theirs.id)}


@pytest.mark.asyncio
async def test_unknown_case_returns_404(client_for, casa_admin):
    async with client_for(casa_admin) as client:
        response = await client.get(f"/cases/{uuid.uuid4()}/edit")

    assert response.status_code == 404
