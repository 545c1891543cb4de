import io

from werkzeug.datastructures import FileStorage

from vidtube.utils.media import LocalMediaStore


def _file(name, content=b"data"):
    return FileStorage(stream=io.BytesIO(content), filename=name)


def test_upload_and_destroy(tmp_path):
    store = LocalMediaStore(tmp_path, "/media", ["png"])
    asset = store.upload(_file("../../My Avatar.png"), folder="avatars")

    assert asset.public_id.startswith("avatars/")
    assert asset.public_id.endswith("My_Avatar.png")
    assert asset.url == f"/media/{asset.public_id}"
    assert (tmp_path / asset.public_id).read_bytes() == b"data"
    assert store.public_id_from_url(asset.url) == asset.public_id

    assert store.destroy(asset.public_id) is True
    assert not (tmp_path / asset.public_id).exists()
    assert store.destroy(asset.public_id) is False


def test_upload_returns_none_without_usable_file(tmp_path):
    store = LocalMediaStore(tmp_path, "/media", ["png", "jpg"])
    assert store.upload(None) is None
    assert store.upload(_file("")) is None
    assert store.upload(_file("script.sh")) is None


def test_destroy_stays_inside_root(tmp_path):
    outside = tmp_path / "keep.png"
    outside.write_bytes(b"x")
    store = LocalMediaStore(tmp_path / "media", "/media")
    assert store.destroy("../keep.png") is False
    assert outside.exists()


def test_foreign_urls_are_not_managed(tmp_path):
    store = LocalMediaStore(tmp_path, "/media")
    assert store.public_id_from_url("https://cdn.example.com/a.png") is None
    assert store.public_id_from_url("") is None
