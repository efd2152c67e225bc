import pytest
from langchain_core.language_models import FakeListLLM
from langchain_core.runnables import RunnableLambda

from chains.chat_orchestrator import (
    NO_DOCUMENTS,
    NO_MATCH,
    ChatOrchestrator,
    ChatState,
)
from common.errors import GenerationError, ValidationError
from graph.store import commit_documents
from ingestion.document_models import MediaType

from conftest import make_doc


def _seed(store):
    commit_documents(
        store,
        [
            make_doc("a", content="the cat sat on the mat", filename="cats.txt"),
            make_doc("b", content="dogs bark", filename="dogs.txt"),
            make_doc(
                "c",
                media_type=MediaType.AUDIO,
                filename="podcast.mp3",
                content="[Audio: podcast.mp3]\nTranscription: my cat purrs",
                extracted_text="my cat purrs",
            ),
        ],
    )


def test_no_documents(store):
    bot = ChatOrchestrator(store, llm=FakeListLLM(responses=["unused"]))

    result = bot.chat("anything at all", "t1")

    assert result.response == NO_DOCUMENTS
    assert result.documents == []
    assert result.state is ChatState.NO_DOCS


def test_no_match(store):
    _seed(store)
    bot = ChatOrchestrator(store, llm=FakeListLLM(responses=["unused"]))

    result = bot.chat("quantum chromodynamics", "t1")

    assert result.response == NO_MATCH
    assert result.documents == []
    assert result.state is ChatState.NO_MATCH


def test_answer_lists_sources_in_rank_order(store):
    _seed(store)
    bot = ChatOrchestrator(store, llm=FakeListLLM(responses=["Cats sit and purr."]))

    result = bot.chat("what does the cat do", "t1")

    # "the" and "cat" are in cats.txt; "cat" twice in the podcast
    assert result.response == "Cats sit and purr.\n\nRetrieved from: cats.txt, podcast.mp3"
    assert [d.filename for d in result.documents] == ["cats.txt", "podcast.mp3"]
    assert result.state is ChatState.RESPOND_WITH_SOURCES


def test_prompt_carries_grounding_context(store):
    _seed(store)
    seen = []

    def capture(prompt_value):
        seen.append(prompt_value.to_string())
        return "ok"

    ChatOrchestrator(store, llm=RunnableLambda(capture)).chat("purrs", "t1")

    assert "[Audio: podcast.mp3]\nTranscription: my cat purrs" in seen[0]
    assert "User question: purrs" in seen[0]


def test_top_k_truncates(store):
    commit_documents(store, [make_doc(str(i), content="shared topic") for i in range(4)])

    limited = ChatOrchestrator(store, llm=FakeListLLM(responses=["x"]), top_k=2).chat("topic", "t1")
    unlimited = ChatOrchestrator(store, llm=FakeListLLM(responses=["x"]), top_k=None).chat(
        "topic", "t1"
    )

    assert [d.id for d in limited.documents] == ["0", "1"]
    assert len(unlimited.documents) == 4


def test_media_type_restriction(store):
    _seed(store)
    bot = ChatOrchestrator(store, llm=FakeListLLM(responses=["purring"]))

    result = bot.chat("cat", "t1", media_types=["audio"])

    assert [d.filename for d in result.documents] == ["podcast.mp3"]


def test_media_type_restriction_can_leave_nothing(store):
    _seed(store)
    bot = ChatOrchestrator(store, llm=FakeListLLM(responses=["unused"]))
    assert bot.chat("cat", "t1", media_types=["video"]).state is ChatState.NO_MATCH


def test_generation_failure_is_raised(store):
    _seed(store)

    def boom(_):
        raise ConnectionError("provider unreachable")

    with pytest.raises(GenerationError, match="provider unreachable"):
        ChatOrchestrator(store, llm=RunnableLambda(boom)).chat("cat", "t1")


@pytest.mark.parametrize("question,tenant", [("", "t1"), ("   ", "t1"), ("cat", ""), ("cat", None)])
def test_bad_requests_are_rejected(store, question, tenant):
    with pytest.raises(ValidationError):
        ChatOrchestrator(store, llm=FakeListLLM(responses=["x"])).chat(question, tenant)
