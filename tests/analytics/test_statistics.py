from src.coaching_center.coaching_center.analytics.statistics import rank_scores, score_summary


def test_summary_of_four_scores():
    stats = score_summary([50, 60, 70, 80])

    assert stats.average == 65.0
    # even count: mean of the two middle values
    assert stats.median == 65.0
    assert stats.highest == 80.0
    assert stats.lowest == 50.0
    assert stats.std_dev == 11.18


def test_summary_std_dev_uses_unrounded_mean():
    stats = score_summary([1, 2, 2])

    assert stats.average == 1.67
    assert stats.std_dev == 0.47


def test_summary_of_nothing_is_zero():
    stats = score_summary([])

    assert (stats.count, stats.average, stats.median, stats.std_dev, stats.highest, stats.lowest) == (0, 0.0, 0.0, 0.0, 0.0, 0.0)


def test_competition_ranking_with_ties():
    ranked = rank_scores([(4, 70), (1, 90), (3, 80), (2, 80)])

    assert [(r.student_id, r.rank) for r in ranked] == [(1, 1), (2, 2), (3, 2), (4, 4)]


def test_percentile_counts_strictly_lower_scores():
    ranked = {r.student_id: r.percentile for r in rank_scores([(1, 90), (2, 80), (3, 80), (4, 70)])}

    assert ranked == {1: 100.0, 2: 33.33, 3: 33.33, 4: 0.0}


def test_single_student_is_top_percentile():
    (only,) = rank_scores([(7, 12.5)])

    assert only.rank == 1
    assert only.percentile == 100.0


def test_ranking_nothing():
    assert rank_scores([]) == []
