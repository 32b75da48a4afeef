"""Tests for regex-based pattern extraction."""

from docfill.extraction.models import ExtractedField
from docfill.extraction.pattern_extractor import PatternExtractor

SAMPLE = (
    "João Silva Santos\n"
    "Email: joao.silva@email.com\n"
    "Tel: (11) 98765-4321\n"
    "CPF: 123.456.789-00\n"
    "Nascimento: 15/05/1990\n"
    "Pretensão: R$ 8.000,00\n"
)


class TestPatternExtractor:
    """Tests for the PatternExtractor class."""

    def setup_method(self) -> None:
        self.extractor = PatternExtractor()

    def test_extracts_all_known_fields(self) -> None:
        fields = self.extractor.extract(SAMPLE)
        values = {k: f.value for k, f in fields.items()}
        assert values == {
            "email": "joao.silva@email.com",
            "phone": "(11) 98765-4321",
            "cpf": "123.456.789-00",
            "birthDate": "15/05/1990",
            "salary": "R$ 8.000,00",
            "fullName": "João Silva Santos",
        }

    def test_fields_are_keyed_by_their_own_key(self) -> None:
        fields = self.extractor.extract("contact: ana@example.org")
        assert fields["email"] == ExtractedField(key="email", value="ana@example.org")

    def test_only_first_match_is_kept(self) -> None:
        fields = self.extractor.extract("a@first.com and b@second.com")
        assert fields["email"].value == "a@first.com"

    def test_empty_text_returns_empty(self) -> None:
        assert self.extractor.extract("") == {}

    def test_no_matches_returns_empty(self) -> None:
        assert self.extractor.extract("ok\n12345") == {}

    def test_undotted_cpf(self) -> None:
        fields = self.extractor.extract("CPF 12345678900")
        assert fields["cpf"].value == "12345678900"

    def test_salary_without_cents(self) -> None:
        fields = self.extractor.extract("Salary R$1.500")
        assert fields["salary"].value == "R$1.500"

    def test_idempotent(self) -> None:
        first = self.extractor.extract(SAMPLE)
        second = self.extractor.extract(SAMPLE)
        assert first == second
        assert list(first) == list(second)


class TestGuessFullName:
    """Tests for the full-name line heuristic."""

    def test_skips_short_lines(self) -> None:
        assert PatternExtractor.guess_full_name("Hi\nMaria Oliveira") == "Maria Oliveira"

    def test_length_bounds_are_exclusive(self) -> None:
        assert PatternExtractor.guess_full_name("Maria") is None
        assert PatternExtractor.guess_full_name("x" * 50) is None
        assert PatternExtractor.guess_full_name("x" * 49) == "x" * 49
        assert PatternExtractor.guess_full_name("x" * 48 + "  ") is None

    def test_skips_lines_with_at_sign(self) -> None:
        text = "reach me @ home\nCarlos Pereira"
        assert PatternExtractor.guess_full_name(text) == "Carlos Pereira"

    def test_skips_lines_with_three_digit_run(self) -> None:
        text = "Rua das Flores 123\nCarlos Pereira"
        assert PatternExtractor.guess_full_name(text) == "Carlos Pereira"

    def test_two_digit_runs_are_allowed(self) -> None:
        assert PatternExtractor.guess_full_name("Apt 12 B Block") == "Apt 12 B Block"

    def test_strips_whitespace_and_blank_lines(self) -> None:
        assert PatternExtractor.guess_full_name("\n   \n  Ana Souza  \n") == "Ana Souza"

    def test_surrounding_whitespace_counts_towards_length(self) -> None:
        text = "   Ana  \nsomething else entirely"
        assert PatternExtractor.guess_full_name(text) == "Ana"

    def test_splits_on_newline_only(self) -> None:
        text = "Ana\x0cSouza\nCarlos Pereira"
        assert PatternExtractor.guess_full_name(text) == "Ana\x0cSouza"

    def test_first_qualifying_line_wins(self) -> None:
        text = "Curriculum Vitae\nAna Souza"
        assert PatternExtractor.guess_full_name(text) == "Curriculum Vitae"
