from noteboard.cmd.server import load_config


def test_yaml_then_env_overrides(tmp_path):
    path = tmp_path / "server.yaml"
    path.write_text("listen: \"127.0.0.1:4000\"\ndb_path: board.db\nrequire_room_for_notes: true\n")

    assert load_config(path, env={}) == {
        "listen": "127.0.0.1:4000",
        "db_path": "board.db",
        "require_room_for_notes": True,
    }

    cfg = load_config(path, env={"PORT": "5005", "NOTEBOARD_DB": "/tmp/x.db"})
    assert cfg["listen"] == "127.0.0.1:5005"
    assert cfg["db_path"] == "/tmp/x.db"


def test_no_file_uses_env_only():
    assert load_config(None, env={}) == {}
    assert load_config(None, env={"PORT": "8080"}) == {"listen": "0.0.0.0:8080"}
    assert load_config(None, env={"NOTEBOARD_LISTEN": "10.0.0.1:9000"}) == {"listen": "10.0.0.1:9000"}
