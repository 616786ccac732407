from healthmate.scheduling.locks import provider_lock


def test_one_lock_per_provider():
    assert provider_lock("p1") is provider_lock("p1")
    assert provider_lock("p1") is not provider_lock("p2")
