import asyncio

from conftest import FakeTier, make_layer
from tierdata.seed import DEMO_USER_ID
from tierdata.services import DEFAULT_ROLES, OWNER_ROLES, has_admin_role
from tierdata.types import TransientError


def test_unknown_subject_gets_default_role(offline_layer):
    assert asyncio.run(offline_layer.roles.resolve_roles("u1")) == {"member"}
    assert asyncio.run(offline_layer.roles.resolve_roles("u1")) == set(DEFAULT_ROLES)


def test_table_rows_win(calls):
    secondary = FakeTier("secondary", calls, select=[{"role": "admin"}, {"role": "mentor"}, {"role": "admin"}])
    layer = make_layer(secondary=secondary, calls=calls)

    roles = asyncio.run(layer.roles.resolve_roles("u1", email="owner@example.com"))

    assert roles == {"admin", "mentor"}
    table = calls[0][2][0]
    assert table == "user_roles"
    assert calls[0][3]["eq"] == {"user_id": "u1"}
    # the primary tier is not involved in role resolution
    assert {c[0] for c in calls} == {"secondary"}


def test_owner_email_when_table_is_empty(calls):
    secondary = FakeTier("secondary", calls, select=[])
    layer = make_layer(secondary=secondary, calls=calls)

    roles = asyncio.run(layer.roles.resolve_roles("u1", email="Owner@Example.com"))

    assert roles == set(OWNER_ROLES)
    # not persisted anywhere
    assert layer.ctx.mirror.keys() == []


def test_owner_email_when_table_is_unreachable(calls):
    layer = make_layer(calls=calls)
    assert asyncio.run(layer.roles.resolve_roles("u1", email="owner@example.com")) == set(OWNER_ROLES)


def test_override_map_is_used_offline(offline_layer):
    async def scenario():
        await offline_layer.roles.set_roles("u1", ["member", "mentor"])
        return await offline_layer.roles.resolve_roles("u1")

    assert asyncio.run(scenario()) == {"member", "mentor"}


def test_seeded_demo_roles(offline_layer):
    roles = asyncio.run(offline_layer.roles.resolve_roles(DEMO_USER_ID))
    assert "member" in roles
    assert roles != {"member"}


def test_set_roles_writes_table_and_mirror(calls):
    secondary = FakeTier("secondary", calls, delete=None, upsert=[])
    layer = make_layer(secondary=secondary, calls=calls)

    assignment = asyncio.run(layer.roles.set_roles("u1", [" admin ", "member", "admin"]))

    assert assignment.roles == ["admin", "member"]
    assert [c[1] for c in calls] == ["upsert", "delete"]
    delete_kwargs = calls[1][3]
    assert delete_kwargs["eq"] == {"user_id": "u1"}
    assert delete_kwargs["not_in"] == {"role": ["admin", "member"]}
    upsert_args, upsert_kwargs = calls[0][2], calls[0][3]
    assert upsert_args[1] == [{"user_id": "u1", "role": "admin"}, {"user_id": "u1", "role": "member"}]
    assert upsert_kwargs["on_conflict"] == "user_id,role"
    assert layer.ctx.mirror.get("mock_roles")["u1"] == ["admin", "member"]


class RoleTable:
    """user_roles rows for one subject, driven through FakeTier responses."""

    def __init__(self, roles):
        self.roles = set(roles)
        self.fail_upsert = False

    def select(self, *args, **kwargs):
        return [{"role": r} for r in sorted(self.roles)]

    def upsert(self, table, rows, **kwargs):
        if self.fail_upsert:
            return TransientError("upsert timed out")
        self.roles |= {r["role"] for r in rows}
        return rows

    def delete(self, table, **kwargs):
        keep = set(kwargs["not_in"]["role"])
        self.roles &= keep
        return None


def _table_layer(calls, table):
    secondary = FakeTier("secondary", calls, select=table.select, upsert=table.upsert, delete=table.delete)
    return make_layer(secondary=secondary, calls=calls)


def test_failed_upsert_leaves_table_untouched(calls):
    table = RoleTable({"admin", "member"})
    table.fail_upsert = True
    layer = _table_layer(calls, table)

    asyncio.run(layer.roles.set_roles("u1", ["member", "creator"]))

    # pruning never ran, so no role the caller asked for was removed
    assert [c[1] for c in calls] == ["upsert"]
    assert table.roles == {"admin", "member"}
    assert layer.ctx.mirror.get("mock_roles")["u1"] == ["member", "creator"]


def test_failed_prune_leaves_superset_of_new_roles(calls):
    table = RoleTable({"admin", "member"})
    secondary = FakeTier(
        "secondary", calls, select=table.select, upsert=table.upsert, delete=TransientError("delete timed out")
    )
    layer = make_layer(secondary=secondary, calls=calls)

    async def scenario():
        await layer.roles.set_roles("u1", ["member", "creator"])
        return await layer.roles.resolve_roles("u1")

    roles = asyncio.run(scenario())

    assert {"member", "creator"} <= roles
    assert roles == {"admin", "member", "creator"}


def test_successful_write_replaces_table_roles(calls):
    table = RoleTable({"admin", "member"})
    layer = _table_layer(calls, table)

    async def scenario():
        await layer.roles.set_roles("u1", ["member", "creator"])
        return await layer.roles.resolve_roles("u1")

    assert asyncio.run(scenario()) == {"member", "creator"}
    assert table.roles == {"member", "creator"}


def test_set_roles_never_raises(calls):
    secondary = FakeTier("secondary", calls, upsert=TransientError("down"))
    layer = make_layer(secondary=secondary, calls=calls)

    assignment = asyncio.run(layer.roles.set_roles("u1", []))

    assert assignment.roles == ["member"]
    assert layer.ctx.mirror.get("mock_roles")["u1"] == ["member"]


def test_set_roles_survives_a_broken_mirror(calls, monkeypatch):
    layer = make_layer(calls=calls)

    def broken(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(layer.ctx.mirror, "set", broken)

    assignment = asyncio.run(layer.roles.set_roles("u1", ["admin"]))
    assert assignment.roles == ["admin"]


def test_resolve_roles_survives_a_broken_mirror(calls, monkeypatch):
    layer = make_layer(calls=calls)

    def broken(*args, **kwargs):
        raise OSError("disk gone")

    monkeypatch.setattr(layer.ctx.mirror, "get", broken)

    assert asyncio.run(layer.roles.resolve_roles("u1")) == {"member"}


def test_malformed_table_rows_fall_through(calls):
    secondary = FakeTier("secondary", calls, select=[{"role": None}])
    layer = make_layer(secondary=secondary, calls=calls)

    assert asyncio.run(layer.roles.resolve_roles("u1")) == {"member"}


def test_has_admin_role():
    assert has_admin_role(["member", "Admin"])
    assert has_admin_role({"founder"})
    assert not has_admin_role(["member", "mentor"])
    assert not has_admin_role([])
