import base64

from client.staging import StagingList, make_staged


def staged(content, source="upload"):
    return make_staged(base64.b64encode(content).decode(), source, label=content.decode())


def test_images_keep_insertion_order():
    staging = StagingList()
    for name in (b"one", b"two", b"three"):
        assert staging.add(staged(name))

    assert [img.label for img in staging] == ["one", "two", "three"]
    assert len(staging) == 3


def test_same_image_is_only_staged_once():
    staging = StagingList()
    assert staging.add(staged(b"page"))
    assert not staging.add(staged(b"page", source="camera"))
    assert len(staging) == 1


def test_removing_one_entry_leaves_the_others_untouched():
    staging = StagingList()
    images = [staged(name) for name in (b"a", b"b", b"c", b"d")]
    for img in images:
        staging.add(img)

    assert staging.remove(images[1].id)

    assert list(staging) == [images[0], images[2], images[3]]
    assert staging.payloads() == [images[0].data, images[2].data, images[3].data]


def test_readding_a_removed_image_appends_it():
    staging = StagingList()
    a, b, c = staged(b"a"), staged(b"b"), staged(b"c")
    for img in (a, b, c):
        staging.add(img)

    staging.remove(a.id)
    staging.add(a)

    assert list(staging) == [b, c, a]


def test_remove_unknown_id_is_a_no_op():
    staging = StagingList([staged(b"a")])
    assert not staging.remove("missing")
    assert len(staging) == 1


def test_clear():
    staging = StagingList([staged(b"a"), staged(b"b")])
    staging.clear()
    assert not staging
    assert staging.payloads() == []
