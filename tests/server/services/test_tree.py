from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from folderhub.server.db.models.folder import FolderDO, FolderShareDO
from folderhub.server.services.tree import FolderTree, build_path

OWNER = 42


def test_build_path() -> None:
    assert build_path(None, "Docs") == "/Docs"
    parent = FolderDO(name="Docs", path="/Docs", user_id=OWNER)
    assert build_path(parent, "Tax") == "/Docs/Tax"


async def test_create_and_list_children(db_session: AsyncSession) -> None:
    tree = FolderTree(db_session)
    docs = await tree.create_folder(OWNER, None, "Docs")
    await tree.create_folder(OWNER, docs, "Tax")
    await tree.create_folder(OWNER, docs, "Letters")
    await tree.create_folder(OWNER + 1, None, "Docs")

    roots = await tree.list_children(OWNER, None)
    assert [f.name for f in roots] == ["Docs"]

    children = await tree.list_children(OWNER, docs.id)
    assert [f.name for f in children] == ["Letters", "Tax"]
    assert [f.path for f in children] == ["/Docs/Letters", "/Docs/Tax"]
    assert await tree.count_children(docs.id) == 2

    assert (await tree.find_child(OWNER, docs.id, "Tax")) is not None
    assert (await tree.find_child(OWNER, None, "Tax")) is None
    assert (await tree.get_folder(OWNER + 1, docs.id)) is None


async def test_ancestors_and_subtree(db_session: AsyncSession) -> None:
    tree = FolderTree(db_session)
    a = await tree.create_folder(OWNER, None, "A")
    b = await tree.create_folder(OWNER, a, "B")
    c = await tree.create_folder(OWNER, b, "C")
    d = await tree.create_folder(OWNER, a, "D")

    assert [f.name for f in await tree.ancestors(c)] == ["A", "B", "C"]
    assert [f.id for f in await tree.subtree(a)] == [a.id, b.id, d.id, c.id]

    assert await tree.is_in_subtree(a.id, c.id)
    assert await tree.is_in_subtree(a.id, a.id)
    assert not await tree.is_in_subtree(b.id, d.id)
    assert not await tree.is_in_subtree(c.id, a.id)


async def test_refresh_paths(db_session: AsyncSession) -> None:
    tree = FolderTree(db_session)
    a = await tree.create_folder(OWNER, None, "A")
    b = await tree.create_folder(OWNER, a, "B")
    c = await tree.create_folder(OWNER, b, "C")

    a.name = "X"
    updated = await tree.refresh_paths(a)

    assert updated == 2
    assert a.path == "/X"
    assert b.path == "/X/B"
    assert c.path == "/X/B/C"


async def test_copy_subtree_into_itself(db_session: AsyncSession) -> None:
    tree = FolderTree(db_session)
    a = await tree.create_folder(OWNER, None, "A", description="Top")
    b = await tree.create_folder(OWNER, a, "B")

    pairs = await tree.copy_subtree(a, b, "A")

    assert [(src.id, dst.path) for src, dst in pairs] == [
        (a.id, "/A/B/A"),
        (b.id, "/A/B/A/B"),
    ]
    root_copy = pairs[0][1]
    assert root_copy.description == "Top (Copy)"
    assert pairs[1][1].description == "Copy of B"
    assert not root_copy.is_favorite
    assert len(await tree.list_owned(OWNER)) == 4


async def test_delete_subtree_rows_and_shares(db_session: AsyncSession) -> None:
    tree = FolderTree(db_session)
    a = await tree.create_folder(OWNER, None, "A")
    b = await tree.create_folder(OWNER, a, "B")
    await tree.create_folder(OWNER, b, "C")
    keep = await tree.create_folder(OWNER, None, "Keep")
    db_session.add(FolderShareDO(folder_id=b.id, owner_id=OWNER, target_user_id=7))
    db_session.add(FolderShareDO(folder_id=keep.id, owner_id=OWNER, target_user_id=7))
    await db_session.flush()

    ids = [f.id for f in await tree.subtree(a)]
    assert await tree.delete_shares(ids) == 1
    assert await tree.delete_subtree_rows(a) == 3
    await db_session.commit()

    remaining = (await db_session.execute(select(FolderDO))).scalars().all()
    assert [f.name for f in remaining] == ["Keep"]
    shares = (await db_session.execute(select(FolderShareDO))).scalars().all()
    assert [s.folder_id for s in shares] == [keep.id]


async def test_search_is_case_insensitive(db_session: AsyncSession) -> None:
    tree = FolderTree(db_session)
    await tree.create_folder(OWNER, None, "Holiday Photos")
    await tree.create_folder(OWNER, None, "Work")
    await tree.create_folder(OWNER, None, "100%")

    assert [f.name for f in await tree.search(OWNER, "photo")] == ["Holiday Photos"]
    assert [f.name for f in await tree.search(OWNER, "%")] == ["100%"]
