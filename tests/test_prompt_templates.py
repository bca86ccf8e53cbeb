import pytest

from src.adapters.outbound.yaml_prompt_template_repository import YamlPromptTemplateRepository
from src.application.services.prompt_renderer import PromptRenderer
from src.application.use_cases.reload_prompt_templates import ReloadPromptTemplatesUseCase
from tests.fakes import PROMPT_TEMPLATES_YAML


@pytest.fixture
def renderer():
    return PromptRenderer(YamlPromptTemplateRepository(PROMPT_TEMPLATES_YAML))


def _variables(**overrides):
    variables = {
        "is_update": False,
        "existing_description": "",
        "has_diffs": False,
        "commit_messages": ["feat: add login", "fix: bug"],
        "code_changes": "",
        "developer_description": "",
        "template_content": "## Summary",
        "template_language": "ko",
    }
    variables.update(overrides)
    return variables


def test_create_prompt_without_diffs(renderer):
    prompt = renderer.render("pr_description", _variables())

    assert "generate a new Pull Request description" in prompt
    assert "UPDATE MODE" not in prompt
    assert "1.  **Analyze Commit Messages:** Review the provided Git commit messages.\n" in prompt
    assert "2.  **Fill Template Sections:** Use the information from the commit messages" in prompt
    assert "6.  **Generate in the specified language:**" in prompt
    assert "Commit Messages:\nfeat: add login\nfix: bug\n" in prompt
    assert "No additional description provided." in prompt
    assert "PR Template (Language: ko):\n## Summary" in prompt


def test_update_prompt_with_diffs(renderer):
    prompt = renderer.render("pr_description", _variables(
        is_update=True,
        existing_description="Old body",
        has_diffs=True,
        code_changes="\n\n=== CODE CHANGES ===\n\n",
        developer_description="Refactored auth",
    ))

    assert "UPDATE an existing Pull Request description" in prompt
    assert "Existing PR Description:\nOld body" in prompt
    assert "(these are NEW commits since the last update)." in prompt
    assert "4.  **Update Template Sections:**" in prompt
    assert "8.  **Generate in the specified language:**" in prompt
    assert "New Commit Messages:" in prompt
    assert "=== CODE CHANGES ===" in prompt
    assert "Developer's Description of New Work:\nRefactored auth" in prompt
    assert "PR Template" not in prompt


def test_unknown_variable_renders_empty(tmp_path):
    path = tmp_path / "prompts.yaml"
    path.write_text("prompts:\n  hello:\n    body: 'Hello {{ missing }}!'\n", encoding="utf-8")

    assert PromptRenderer(YamlPromptTemplateRepository(path)).render("hello", {}) == "Hello !"


def test_repository_lists_and_rejects_names(tmp_path):
    path = tmp_path / "prompts.yaml"
    path.write_text(
        "prompts:\n  a:\n    body: A\n    description: first\n  b:\n    body: B\n",
        encoding="utf-8",
    )
    repo = YamlPromptTemplateRepository(path)

    assert repo.template_names() == ["a", "b"]
    assert repo.get_template("a").description == "first"
    with pytest.raises(ValueError, match="c"):
        repo.get_template("c")


def test_missing_yaml_file(tmp_path):
    repo = YamlPromptTemplateRepository(tmp_path / "nope.yaml")

    with pytest.raises(FileNotFoundError):
        repo.get_template("pr_description")


def test_reload_picks_up_changes(tmp_path):
    path = tmp_path / "prompts.yaml"
    path.write_text("prompts:\n  pr_description:\n    body: v1\n", encoding="utf-8")
    repo = YamlPromptTemplateRepository(path)
    assert repo.get_template("pr_description").body == "v1"

    path.write_text("prompts:\n  pr_description:\n    body: version2\n", encoding="utf-8")
    result = ReloadPromptTemplatesUseCase(repo).execute()

    assert result["status"] == "success"
    assert result["templates"] == ["pr_description"]
    assert result["pr_description_body_length"] == len("version2")
