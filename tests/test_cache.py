from plantcare.utils.cache import (
    cache_garden_listing,
    clear_all_garden_cache,
    invalidate_user_garden_cache,
)


def _counting_listing(on_call=None):
    calls = []

    @cache_garden_listing
    def listing(user_id):
        calls.append(user_id)
        if on_call:
            on_call(user_id, len(calls))
        return len(calls)

    return listing, calls


def test_listing_is_cached_per_user():
    listing, calls = _counting_listing()

    assert listing("u1") == 1
    assert listing("u1") == 1
    assert listing("u2") == 2
    assert calls == ["u1", "u2"]


def test_invalidation_forces_a_reload():
    listing, _ = _counting_listing()

    listing("u1")
    invalidate_user_garden_cache("u1")

    assert listing("u1") == 2


def test_listing_invalidated_while_loading_is_not_stored():
    def mutate_during_first_load(user_id, call_number):
        if call_number == 1:
            invalidate_user_garden_cache(user_id)

    listing, calls = _counting_listing(mutate_during_first_load)

    assert listing("u1") == 1
    # The first result was read before the mutation, so it was not kept
    assert listing("u1") == 2
    assert listing("u1") == 2
    assert len(calls) == 2


def test_clear_all_during_load_discards_result():
    def clear_during_first_load(user_id, call_number):
        if call_number == 1:
            clear_all_garden_cache()

    listing, calls = _counting_listing(clear_during_first_load)

    listing("u1")
    listing("u1")

    assert len(calls) == 2
