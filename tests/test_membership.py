from noteboard.core.membership import MembershipTracker


def test_join_accumulates_rooms():
    m = MembershipTracker()
    m.join("c1", "r1")
    m.join("c1", "r2")
    assert m.rooms_of("c1") == frozenset({"r1", "r2"})
    assert m.audience_for("r1") == {"c1"}
    assert m.audience_for("r2") == {"c1"}


def test_connect_without_join_is_in_all_but_no_room():
    m = MembershipTracker()
    m.connect("c1")
    m.join("c2", "r1")
    assert m.all() == {"c1", "c2"}
    assert m.audience_for("r1") == {"c2"}
    assert m.rooms_of("c1") == frozenset()
    assert m.rooms_of("c2") == frozenset({"r1"})


def test_leave_drops_one_room():
    m = MembershipTracker()
    m.join("c1", "r1")
    m.join("c1", "r2")
    m.leave("c1", "r1")
    m.leave("ghost", "r1")
    assert m.audience_for("r1") == set()
    assert m.rooms_of("c1") == frozenset({"r2"})
    assert "c1" in m


def test_disconnect_forgets_everything():
    m = MembershipTracker()
    m.join("c1", "r1")
    m.join("c2", "r1")
    m.disconnect("c1")
    m.disconnect("c1")
    assert m.audience_for("r1") == {"c2"}
    assert m.all() == {"c2"}
    assert m.rooms_of("c1") == frozenset()
    assert len(m) == 1
