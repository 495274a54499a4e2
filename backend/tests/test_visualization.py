from conversations.visualization import create_chart_spec, detect_chart_type, extract_title, wants_visualization


def test_plain_question_gets_no_chart():
    assert create_chart_spec("What is the leave policy?") is None
    assert not wants_visualization("")


def test_chart_spec_is_declarative():
    spec = create_chart_spec('Plot a pie chart of user engagement named "Weekly Users"')
    assert spec["type"] == "chart"
    assert spec["chart_type"] == "pie"
    assert spec["title"] == "Weekly Users"
    assert spec["x_key"] == "day"
    assert spec["series"] == ["users", "sessions"]
    assert len(spec["data"]) == 7
    # only data, nothing executable
    assert set(spec) == {"id", "title", "type", "chart_type", "x_key", "series", "data", "created_at"}


def test_defaults():
    assert detect_chart_type("visualize this") == "bar"
    assert extract_title("visualize this") == "Data Visualization"
    spec = create_chart_spec("visualize this")
    assert spec["x_key"] == "name"
    assert spec["series"] == ["value", "growth"]


def test_sample_rows_are_copies():
    first = create_chart_spec("bar chart of sales")
    first["data"][0]["sales"] = -1
    second = create_chart_spec("bar chart of sales")
    assert second["data"][0]["sales"] == 4000
