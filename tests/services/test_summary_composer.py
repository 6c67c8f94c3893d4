# tests/services/test_summary_composer.py
"""
Unit tests for the Ikigai summary composer.
"""
import pytest

from cool_ikigai.services.summary_composer import compose, find_common_themes


@pytest.mark.unit
class TestCommonThemes:

    def test_keyword_in_two_domains(self):
        themes = find_common_themes([["musique", "sport"], ["musique"], ["climat"], []])

        assert themes == ["musique"]

    def test_repeated_keyword_in_one_domain_is_not_a_theme(self):
        assert find_common_themes([["musique", "musique"], ["sport"]]) == []

    def test_first_seen_order(self):
        themes = find_common_themes([["sport", "musique"], ["musique", "sport"]])

        assert themes == ["sport", "musique"]


@pytest.mark.unit
class TestCompose:

    @pytest.fixture
    def summary(self, prompt_manager):
        return compose(
            "la musique et la peinture",
            "la musique et le dessin",
            "plus de solidarité",
            "enseigner la musique",
            prompt_manager=prompt_manager
        )

    def test_narrative_contains_every_domain(self, summary):
        for text in ("la musique et la peinture", "la musique et le dessin",
                     "plus de solidarité", "enseigner la musique"):
            assert text in summary.narrative

    def test_common_themes(self, summary):
        assert summary.common_themes == ["musique"]
        assert "musique" in summary.narrative

    def test_careers_ranked(self, summary):
        assert summary.careers == [
            "Designer graphique",
            "Illustrateur·rice",
            "Enseignant·e",
            "Formateur·rice"
        ]

    def test_domains_kept_verbatim(self, summary):
        assert summary.passions == "la musique et la peinture"
        assert summary.world_needs == "plus de solidarité"

    def test_ikigai_data_shape(self, summary):
        data = summary.as_ikigai_data()

        assert data["worldNeeds"] == "plus de solidarité"
        assert data["summary"] == summary.narrative
        assert set(data) == {"passions", "talents", "worldNeeds", "monetization", "summary"}

    def test_no_themes_no_careers(self, prompt_manager):
        summary = compose("zzz", "yyy", "xxx", "www", prompt_manager=prompt_manager)

        assert summary.common_themes == []
        assert summary.careers == []
        assert "Les thèmes" not in summary.narrative
        assert "pistes de métiers" not in summary.narrative
        assert "zzz" in summary.narrative

    def test_same_inputs_same_summary(self, summary, prompt_manager):
        again = compose(
            "la musique et la peinture",
            "la musique et le dessin",
            "plus de solidarité",
            "enseigner la musique",
            prompt_manager=prompt_manager
        )

        assert again is not summary
        assert again.narrative == summary.narrative
        assert again.model_dump(exclude={"created_at"}) == summary.model_dump(exclude={"created_at"})
