import pytest

from clubhouse.db import models, schemas
from clubhouse.db.rls import build_claims
from clubhouse.errors import ConflictError, NotFoundError, ValidationFailed
from clubhouse.services import CategoryService, ContainerService, HistoryService, ItemService
from clubhouse.utils.feature_flags import refresh_feature_flag_cache

SIZE_REQUIRED = [{"name": "size", "label": "Size", "type": "select", "required": True, "options": ["S", "M", "L"]}]


@pytest.fixture
def quartermaster(profile_factory):
    return profile_factory(roles=["quartermaster"])


def _claims(profile):
    return build_claims(profile.id, profile.email, profile.roles)


# Categories

def test_category_names_are_unique(db_session, quartermaster):
    service = CategoryService(db_session, _claims(quartermaster))
    service.create(schemas.CategoryCreate(name="Jackets", available_attributes=SIZE_REQUIRED))

    with pytest.raises(ConflictError) as exc:
        service.create(schemas.CategoryCreate(name="Jackets"))
    assert exc.value.message == "A category with this name already exists"


def test_category_delete_blocked_by_items(db_session, quartermaster, category_factory, container_factory, item_factory):
    category = category_factory()
    item_factory(container_factory(), category)

    with pytest.raises(ConflictError) as exc:
        CategoryService(db_session, _claims(quartermaster)).delete(category.id)
    assert exc.value.message == "Cannot delete a category that has items"


def test_category_item_counts(db_session, quartermaster, category_factory, container_factory, item_factory):
    masks = category_factory(name="Masks")
    category_factory(name="Gloves")
    box = container_factory()
    item_factory(box, masks)
    item_factory(box, masks)

    counts = {
        e["category"].name: e["item_count"]
        for e in CategoryService(db_session, _claims(quartermaster)).get_with_item_count()
    }
    assert counts == {"Gloves": 0, "Masks": 2}


# Containers

def test_container_parent_must_exist(db_session, quartermaster):
    import uuid

    with pytest.raises(ValidationFailed) as exc:
        ContainerService(db_session, _claims(quartermaster)).create(
            schemas.ContainerCreate(name="Shelf", parent_container_id=uuid.uuid4())
        )
    assert exc.value.message == "Invalid parent container"


def test_container_cannot_move_under_descendant(db_session, quartermaster, container_factory):
    root = container_factory(name="Store room")
    shelf = container_factory(name="Shelf", parent=root)
    box = container_factory(name="Box", parent=shelf)
    service = ContainerService(db_session, _claims(quartermaster))

    for bad_parent in (root.id, box.id):
        with pytest.raises(ValidationFailed):
            service.update(root.id, schemas.ContainerUpdate(parent_container_id=bad_parent))

    parents = {c.id for c in service.get_available_parents(exclude_id=shelf.id)}
    assert parents == {root.id}


def test_container_delete_reparents_children(db_session, quartermaster, container_factory):
    root = container_factory(name="Store room")
    shelf = container_factory(name="Shelf", parent=root)
    box = container_factory(name="Box", parent=shelf)

    ContainerService(db_session, _claims(quartermaster)).delete(shelf.id)

    db_session.expire_all()
    assert db_session.get(models.Container, shelf.id) is None
    assert db_session.get(models.Container, box.id).parent_container_id == root.id


def test_container_delete_blocked_by_items(
    db_session, quartermaster, container_factory, category_factory, item_factory
):
    box = container_factory()
    item_factory(box, category_factory())
    with pytest.raises(ConflictError) as exc:
        ContainerService(db_session, _claims(quartermaster)).delete(box.id)
    assert exc.value.message == "Cannot delete a container that contains items"


def test_container_relations(db_session, quartermaster, container_factory, category_factory, item_factory):
    root = container_factory(name="Store room")
    shelf = container_factory(name="Shelf", parent=root)
    container_factory(name="Box", parent=shelf)
    item = item_factory(shelf, category_factory())

    related = ContainerService(db_session, _claims(quartermaster)).get_with_relations(shelf.id)
    assert related["parent"].id == root.id
    assert [c.name for c in related["children"]] == ["Box"]
    assert [i.id for i in related["items"]] == [item.id]


# Items

def test_item_requires_category_attributes(db_session, quartermaster, category_factory, container_factory):
    category = category_factory(attributes=SIZE_REQUIRED)
    box = container_factory()
    service = ItemService(db_session, _claims(quartermaster))

    with pytest.raises(ValidationFailed) as exc:
        service.create(schemas.ItemCreate(container_id=box.id, category_id=category.id, attributes={"size": " "}))
    assert exc.value.message == "Missing required attribute: Size"

    item = service.create(schemas.ItemCreate(container_id=box.id, category_id=category.id, attributes={"size": "M"}))
    assert item.created_by == quartermaster.id
    history = HistoryService(db_session, _claims(quartermaster)).get_by_item(item.id)
    assert [h["entry"].action for h in history] == ["created"]


def test_item_unknown_container(db_session, quartermaster, category_factory):
    import uuid

    with pytest.raises(NotFoundError) as exc:
        ItemService(db_session, _claims(quartermaster)).create(
            schemas.ItemCreate(container_id=uuid.uuid4(), category_id=category_factory().id)
        )
    assert exc.value.message == "Container not found"


def test_item_move_records_history(db_session, quartermaster, category_factory, container_factory, item_factory):
    source = container_factory(name="Bag")
    target = container_factory(name="Rack")
    item = item_factory(source, category_factory())

    moved = ItemService(db_session, _claims(quartermaster)).move_to_container(item.id, target.id, notes="Tidy up")

    assert moved.container_id == target.id
    entries = HistoryService(db_session, _claims(quartermaster)).get_by_item(item.id)
    assert len(entries) == 1
    assert entries[0]["entry"].action == "moved"
    assert entries[0]["old_container_name"] == "Bag"
    assert entries[0]["new_container_name"] == "Rack"


def test_item_maintenance_toggle(db_session, quartermaster, category_factory, container_factory, item_factory):
    item = item_factory(container_factory(), category_factory())
    service = ItemService(db_session, _claims(quartermaster))

    assert service.mark_maintenance(item.id, True, notes="Broken blade").out_for_maintenance is True
    assert service.mark_maintenance(item.id, False).out_for_maintenance is False

    actions = {h["entry"].action for h in HistoryService(db_session, _claims(quartermaster)).get_recent()}
    assert actions == {"maintenance_out", "maintenance_in"}


def test_item_search_and_paging(db_session, quartermaster, category_factory, container_factory, item_factory):
    swords = category_factory(name="Feders")
    masks = category_factory(name="Masks")
    box = container_factory(name="Sword rack")
    for _ in range(3):
        item_factory(box, swords)
    item_factory(container_factory(name="Shelf"), masks, notes="Needs new padding", out_for_maintenance=True)
    service = ItemService(db_session, _claims(quartermaster))

    page = service.find_many(schemas.ItemSearch(search="feder", limit=2))
    assert page["total"] == 3
    assert len(page["items"]) == 2

    assert service.find_many(schemas.ItemSearch(search="padding"))["total"] == 1
    assert service.find_many(schemas.ItemSearch(out_for_maintenance=True))["total"] == 1
    assert len(service.find_many(schemas.ItemSearch(container_id=box.id, page=2, limit=2))["items"]) == 1


def test_item_update_keeps_required_attributes(
    db_session, quartermaster, category_factory, container_factory, item_factory
):
    category = category_factory(attributes=SIZE_REQUIRED)
    item = item_factory(container_factory(), category, attributes={"size": "L"})

    with pytest.raises(ValidationFailed):
        ItemService(db_session, _claims(quartermaster)).update(item.id, schemas.ItemUpdate(attributes={}))

    updated = ItemService(db_session, _claims(quartermaster)).update(item.id, schemas.ItemUpdate(quantity=4))
    assert updated.quantity == 4


def test_item_delete_removes_history(db_session, quartermaster, category_factory, container_factory, item_factory):
    item = item_factory(container_factory(), category_factory())
    service = ItemService(db_session, _claims(quartermaster))
    service.mark_maintenance(item.id, True)

    service.delete(item.id)

    assert db_session.query(models.InventoryHistory).filter_by(item_id=item.id).count() == 0
    with pytest.raises(NotFoundError):
        service.find_by_id(item.id)


# API

def test_members_browse_but_cannot_manage(client, as_user, profile_factory, category_factory):
    member = profile_factory()
    category_factory(name="Gloves")

    r = client.get("/api/inventory/categories", headers=as_user(member))
    assert r.status_code == 200
    assert [c["name"] for c in r.json()["data"]] == ["Gloves"]

    r = client.post("/api/inventory/categories", json={"name": "Masks"}, headers=as_user(member))
    assert r.status_code == 403


def test_inventory_api_flow(client, as_user, quartermaster):
    headers = as_user(quartermaster)

    r = client.post(
        "/api/inventory/categories",
        json={"name": "Jackets", "available_attributes": SIZE_REQUIRED},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    category_id = r.json()["data"]["id"]

    r = client.post("/api/inventory/containers", json={"name": "Locker"}, headers=headers)
    assert r.status_code == 201
    container_id = r.json()["data"]["id"]

    r = client.post(
        "/api/inventory/items",
        json={"container_id": container_id, "category_id": category_id, "attributes": {}},
        headers=headers,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Missing required attribute: Size"

    r = client.post(
        "/api/inventory/items",
        json={"container_id": container_id, "category_id": category_id, "attributes": {"size": "S"}},
        headers=headers,
    )
    assert r.status_code == 201
    item = r.json()["data"]
    assert item["container"]["name"] == "Locker"
    assert item["category"]["name"] == "Jackets"

    r = client.get("/api/inventory/items", params={"search": "lock"}, headers=headers)
    assert r.json()["data"]["total"] == 1
    assert r.json()["data"]["page"] == 1

    r = client.get("/api/inventory/items/filter-options", headers=headers)
    assert r.json()["data"]["categories"] == [{"id": category_id, "name": "Jackets"}]

    r = client.get(f"/api/inventory/containers/{container_id}", headers=headers)
    assert [i["id"] for i in r.json()["data"]["items"]] == [item["id"]]

    r = client.get(f"/api/inventory/items/{item['id']}/history", headers=headers)
    assert [h["action"] for h in r.json()["data"]] == ["created"]


def test_inventory_hidden_when_disabled(client, as_user, quartermaster, monkeypatch):
    monkeypatch.setenv("FEATURE_INVENTORY_ENABLED", "false")
    refresh_feature_flag_cache()

    r = client.get("/api/inventory/categories", headers=as_user(quartermaster))
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Not found"}
