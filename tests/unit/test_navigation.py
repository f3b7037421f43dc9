from clubhouse.utils.navigation import NAVIGATION, filter_navigation


def _titles(groups):
    return {group["label"]: [item["title"] for item in group["items"]] for group in groups}


def test_members_see_club_and_equipment():
    assert _titles(filter_navigation(NAVIGATION, ["member"])) == {
        "Club": ["Dashboard", "Workshops", "My profile"],
        "Inventory": ["Equipment"],
    }


def test_empty_groups_are_dropped():
    groups = [{"label": "Secret", "items": [{"title": "Vault", "url": "/vault", "roles": ["admin"]}]}]
    assert filter_navigation(groups, ["member"]) == []
    assert filter_navigation(groups, ["admin"]) == groups


def test_admin_sees_everything():
    filtered = filter_navigation(NAVIGATION, ["admin"])
    assert sum(len(g["items"]) for g in filtered) == sum(len(g["items"]) for g in NAVIGATION)


def test_navigation_endpoint(client, as_user, profile_factory):
    quartermaster = profile_factory(roles=["member", "quartermaster"])

    r = client.get("/api/navigation", headers=as_user(quartermaster))
    assert r.status_code == 200
    titles = _titles(r.json()["data"])
    assert titles["Inventory"] == ["Equipment", "Containers", "Categories"]
    assert "Administration" not in titles
