from extraction.relevance_ranker import RelevanceRanker, normalize_text, split_units


def _filler(n: int) -> list:
    return [f"Paragraph {i} describes the history of the company." for i in range(n)]


def test_split_units_normalises_bullets_and_frequency():
    units = split_units(
        "• Dust the radiator (frequency : weekly)\n"
        "1. Wipe the window sill\n"
        "Mop.\n"
        "ok\n"
        "Empty all bins. Then 2 chairs are stacked."
    )
    assert units == [
        "- Dust the radiator (Frequency: weekly)",
        "- Wipe the window sill",
        "Mop",
        "Empty all bins",
        "Then 2 chairs are stacked",
    ]


def test_normalize_text():
    raw = "Don’t “move” it\r\nnext\tline\u0000"
    assert normalize_text(raw) == "Don't \"move\" it\nnext line"


def test_rank_is_idempotent():
    text = "\n".join(_filler(20) + ["Clean the floor daily", "Vacuum carpet (Frequency: weekly)"] + _filler(20))
    ranker = RelevanceRanker()
    assert ranker.rank(text) == ranker.rank(text)
    assert ranker.rank(text).text == ranker.rank(text).text


def test_rank_keeps_document_order():
    lines = _filler(40)
    lines.insert(35, "Sanitize toilet and sink in every bathroom")
    lines.insert(3, "Wipe door handles and light switch plates")
    ranked = RelevanceRanker().rank("\n".join(lines))

    positions = [line.position for line in ranked.lines]
    assert positions == sorted(positions)
    assert len(ranked.lines) == 30
    assert ranked.total_units == 42
    assert ranked.lines[0].text == "Paragraph 0 describes the history of the company"
    assert "Wipe door handles and light switch plates" in ranked.text
    assert "Sanitize toilet and sink in every bathroom" in ranked.text


def test_rank_returns_all_units_when_fewer_than_limit():
    text = "Dust shelves weekly\nThe lift is out of order today\nMop the kitchen floor"
    ranked = RelevanceRanker().rank(text)
    assert [line.position for line in ranked.lines] == [0, 1, 2]
    assert ranked.text == text


def test_short_task_lines_are_kept():
    ranked = RelevanceRanker().rank("Mop floors\nDust desks\nClean sink")
    assert ranked.text == "Mop floors\nDust desks\nClean sink"
    assert len(ranked.lines) == 3


def test_ties_keep_first_seen_order():
    ranked = RelevanceRanker(max_units=5).rank("\n".join(_filler(8)))
    assert [line.position for line in ranked.lines] == [0, 1, 2, 3, 4]


def test_scores_reward_cleaning_lines():
    ranker = RelevanceRanker()
    scores = ranker.score_units(
        [
            "Paragraph 1 describes the history of the company",
            "Clean bathroom sink weekly",
            "- Vacuum hallway carpet (Frequency: daily)",
        ]
    )
    assert scores[0] == 0
    assert scores[1] > 8  # frequency-word and verb bonuses plus keywords
    assert scores[2] > scores[0]
