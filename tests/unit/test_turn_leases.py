import threading

from smartcv.core.runtime import TurnLeases


def test_same_identifier_is_serialised() -> None:
    leases = TurnLeases()
    entered = threading.Event()
    order: list[str] = []

    def second_turn() -> None:
        with leases.hold("+234"):
            order.append("second")
        entered.set()

    with leases.hold("+234"):
        worker = threading.Thread(target=second_turn)
        worker.start()
        assert not entered.wait(0.2)
        order.append("first")

    worker.join(timeout=5)
    assert order == ["first", "second"]
    assert len(leases) == 0


def test_different_identifiers_do_not_block() -> None:
    leases = TurnLeases()
    done = threading.Event()

    def other_turn() -> None:
        with leases.hold("42"):
            done.set()

    with leases.hold("+234"):
        worker = threading.Thread(target=other_turn)
        worker.start()
        assert done.wait(5)
    worker.join(timeout=5)
    assert len(leases) == 0
