import asyncio
import json
import logging
from pathlib import Path

import pytest
from conftest import CAR_URL, car_page, post_card, post_link, post_page

from drive2_mdx.errors import FilesystemError
from drive2_mdx.fetcher import FetchClient
from drive2_mdx.pipeline import run_pipeline
from drive2_mdx.utils import page_url


def _run(site, config):
    return asyncio.run(run_pipeline(CAR_URL, config, client=FetchClient(site, config)))


def _ledger(config):
    return json.loads((config.output_root / ".progress.json").read_text(encoding="utf-8"))


def _post_files(config):
    return sorted(p.name for p in config.output_root.glob("*.md") if p.name != "Home.md")


def test_fresh_run_writes_review_posts_and_ledger(site, config, logbook):
    links = logbook(3)

    summary = _run(site, config)

    assert summary.review_saved
    assert summary.posts_found == 3
    assert summary.posts_saved == 3
    assert summary.posts_failed == 0
    home = (config.output_root / "Home.md").read_text(encoding="utf-8")
    assert home.startswith("# Toyota Chaser\n\n## Отзыв владельца\n\nGreat **car**")
    assert _post_files(config) == [
        "2014-01-19 - Post 1.md",
        "2014-01-19 - Post 2.md",
        "2014-01-19 - Post 3.md",
    ]
    post = (config.output_root / "2014-01-19 - Post 1.md").read_text(encoding="utf-8")
    assert "**Author:** [Driver](https://www.drive2.ru/users/driver/)" in post
    assert "![Old filter](https://img.drive2.ru/p1.jpg)\n*Old filter*" in post

    ledger = _ledger(config)
    assert ledger["reviewComplete"] is True
    assert [entry["link"] for entry in ledger["processedPosts"]] == links
    assert ledger["processedPosts"][0] == {
        "link": links[0],
        "title": "Post 1",
        "fileName": "2014-01-19 - Post 1.md",
    }


def test_second_run_is_a_no_op(site, config, logbook):
    links = logbook(3)
    _run(site, config)
    ledger_before = _ledger(config)
    files_before = _post_files(config)

    summary = _run(site, config)

    assert summary.review_skipped
    assert summary.posts_remaining == 0
    assert summary.posts_saved == 0
    assert _ledger(config) == ledger_before
    assert _post_files(config) == files_before
    assert all(site.visits(link) == 1 for link in links)


def test_one_failing_post_does_not_stop_the_batch(site, config, logbook):
    links = logbook(5)
    site.fail(links[2])

    summary = _run(site, config)

    assert summary.posts_saved == 4
    assert summary.posts_failed == 1
    recorded = [entry["link"] for entry in _ledger(config)["processedPosts"]]
    assert recorded == [links[0], links[1], links[3], links[4]]
    assert "2014-01-19 - Post 3.md" not in _post_files(config)
    assert len(_post_files(config)) == 4


def test_resume_only_fetches_what_is_left(site, config, logbook):
    links = logbook(5)
    site.fail(links[2])
    _run(site, config)

    site.failures.clear()
    site.gotos.clear()
    summary = _run(site, config)

    assert summary.posts_remaining == 1
    assert summary.posts_saved == 1
    assert [url for url, _, _ in site.gotos] == [CAR_URL, links[2]]
    assert len(_ledger(config)["processedPosts"]) == 5


def test_review_failure_is_retried_next_run(site, config, logbook):
    logbook(1)
    # The review fetch uses up every attempt; the listing fetch then succeeds.
    site.fail(CAR_URL, times=config.max_retries)

    summary = _run(site, config)

    assert not summary.review_saved
    assert summary.posts_saved == 1
    assert not (config.output_root / "Home.md").exists()
    assert _ledger(config)["reviewComplete"] is False

    summary = _run(site, config)
    assert summary.review_saved
    assert (config.output_root / "Home.md").exists()
    assert _ledger(config)["reviewComplete"] is True


def test_unreachable_listing_ends_run_without_posts(site, config, logbook):
    logbook(2)
    site.fail(CAR_URL)

    summary = _run(site, config)

    assert summary.collection_failed
    assert summary.posts_saved == 0
    assert not (config.output_root / ".progress.json").exists()


def test_duplicate_listing_entries_are_processed_once(site, config):
    site.pages[CAR_URL] = car_page([post_card(1, "Post 1"), post_card(1, "Post 1")])
    site.pages[post_link(1)] = post_page("Post 1")

    summary = _run(site, config)

    assert summary.posts_saved == 1
    assert summary.duplicates_skipped == 1
    assert site.visits(post_link(1)) == 1
    assert len(_ledger(config)["processedPosts"]) == 1


def test_unmarked_file_from_a_crash_is_overwritten(site, config, logbook):
    logbook(1)
    config.output_root.mkdir(parents=True)
    stale = config.output_root / "2014-01-19 - Post 1.md"
    stale.write_text("partial", encoding="utf-8")

    _run(site, config)

    assert stale.read_text(encoding="utf-8").startswith("# Post 1")


def test_write_failure_leaves_post_unprocessed(site, config, logbook):
    links = logbook(2)
    config.output_root.mkdir(parents=True)
    # A directory squatting on the target filename makes the write fail.
    (config.output_root / "2014-01-19 - Post 1.md").mkdir()

    summary = _run(site, config)

    assert summary.posts_failed == 1
    assert summary.posts_saved == 1
    assert [e["link"] for e in _ledger(config)["processedPosts"]] == [links[1]]


def test_output_directory_failure_is_fatal(site, config, tmp_path: Path, logbook):
    logbook(1)
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    config.output_root = blocker / "out"

    with pytest.raises(FilesystemError):
        _run(site, config)
    assert site.gotos == []


def test_listing_page_crash_does_not_abort_the_run(site, config):
    for number in (1, 2, 3):
        url = CAR_URL if number == 1 else page_url(CAR_URL, number)
        site.pages[url] = car_page([post_card(number, f"Post {number}")], total_pages=3)
        site.pages[post_link(number)] = post_page(f"Post {number}")
    # Launches: review, listing page 1, listing page 2.
    site.broken_launches = {3}

    summary = _run(site, config)

    assert not summary.collection_failed
    assert summary.posts_found == 2
    assert summary.posts_saved == 2
    assert [e["link"] for e in _ledger(config)["processedPosts"]] == [
        post_link(1),
        post_link(3),
    ]


def test_same_title_and_date_warns_before_overwriting(site, config, caplog):
    site.pages[CAR_URL] = car_page([post_card(1, "Oil"), post_card(2, "Oil")])
    site.pages[post_link(1)] = post_page("Oil")
    site.pages[post_link(2)] = post_page("Oil")

    with caplog.at_level(logging.WARNING, logger="drive2_mdx"):
        summary = _run(site, config)

    assert summary.posts_saved == 2
    assert _post_files(config) == ["2014-01-19 - Oil.md"]
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert any(
        "2014-01-19 - Oil.md" in message and post_link(1) in message for message in warnings
    )
