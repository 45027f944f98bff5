"""Career-agent conversation over the OpenAI chat API.

``CareerAgent.respond`` runs the tool-calling protocol: a first completion
may ask for ``search_jobs``; the matcher runs synchronously, its result goes
back to the model as a ``tool`` message, and a second completion narrates
the postings. ``stream_chat`` relays a plain completion token by token.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from openai import APIConnectionError, APITimeoutError, OpenAI, RateLimitError

from career_agent.catalog import default_catalog
from career_agent.config import get_env, load_settings
from career_agent.log import get_logger
from career_agent.matcher import JobMatcher
from career_agent.models import SENIORITY_LEVELS, SearchQuery, search_payload
from career_agent.retry import retry

log = get_logger(__name__)

SEARCH_TOOL_NAME = "search_jobs"

SYSTEM_PROMPT = """# 美容クリニック業界専門キャリアエージェント

あなたは「美容クリニック業界」に特化したキャリアエージェントAIです。
対象は美容医療業界への転職を検討している方、または美容クリニックでのキャリアアップを目指す方です。
30分の会話を通してキャリア相談を行い、その内容をもとに最適な美容クリニックの求人を紹介することを目的とします。

## 役割と目標
- ユーザーの美容医療業界への興味・経験・希望条件を自然な会話で整理
- キャリア相談の内容を踏まえて、最適な美容クリニックの求人を検索し提案
- 業界の内部情報や転職成功事例を交えて、実践的なアドバイスを提供

## 会話の進め方（30分目安）

### 1. 導入（0〜3分）
- 挨拶と進行の共有
- 簡単な転職状況を確認（現職／転職理由／美容業界への興味）

### 2. キャリア相談（4〜15分）
自然な対話の中で以下を把握：
- 美容医療への興味のきっかけ
- 現在の職種・業界と経験年数
- 接客・カウンセリング経験
- 美容・医療に関する知識や資格
- 希望条件（勤務地／年収／休日／福利厚生）
- キャリアの目標や不安

### 3. 求人検索と紹介（16〜27分）
- 相談内容を要約し、検索条件を提示して確認
- search_jobs ツールを呼び出して求人を検索
- 検索結果を魅力的に提示（内部情報や選考対策も含む）
- ユーザーが興味を持った求人は詳細情報を提供

### 4. まとめと次ステップ（28〜30分）
- 紹介した求人の中でおすすめを再度強調
- 選考対策や面接のポイントをアドバイス
- 次のアクション（応募・見学・追加相談）を提案

## 重要な注意事項
- 美容クリニックの内部情報（離職理由、労働環境）も正直に共有
- 年収交渉の実績や選考対策情報を積極的に提供
- 書類選考免除などの特典があれば必ず伝える
- 美容医療未経験者にも親切丁寧に対応
- 業界のメリット・デメリットを公平に説明
- 雑談を交えながら本音を引き出す

## 初回の挨拶
「こんにちは！美容クリニック業界専門のキャリアエージェントAIです。美容医療業界への転職をお考えですね。まずは現在のお仕事と、美容クリニックに興味を持たれたきっかけを教えていただけますか？」"""

RESULTS_PROMPT = """求人検索結果を紹介する際は以下の形式で応答してください：

1. まず最初に、一番おすすめの求人（クリニック名）とその理由を簡潔に説明
   例：「今回一番おすすめなのは〇〇クリニックです。理由は...」

2. その後、検索結果の求人をカード形式で表示（マークダウン形式）
   各求人は以下の情報を含める：
   - 求人タイトル
   - 会社名
   - 勤務地
   - 年収
   - 仕事内容
   - 詳細リンク
   - 特徴やメリット（public_agent_noteやbenefitsから抜粋）

3. 最後に、興味のある求人について詳しく聞きたいか確認

注意：求人情報は正確に、魅力的に伝えること。"""

CHAT_SYSTEM_PROMPT = "You are a helpful assistant."

SEARCH_JOBS_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": SEARCH_TOOL_NAME,
        "description": "美容クリニックの求人を検索します。ユーザーの希望条件に基づいて最適な美容クリニックの求人を検索できます。",
        "parameters": {
            "type": "object",
            "properties": {
                "q": {
                    "type": "string",
                    "description": "検索キーワード（例：受付、カウンセラー、看護師、コンシェルジュ）",
                },
                "location": {
                    "type": "string",
                    "description": "勤務地（例：東京、六本木、新宿、大阪）",
                },
                "skills": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "スキル（例：接客、カウンセリング、看護、美容知識）",
                },
                "seniority": {
                    "type": "string",
                    "enum": list(SENIORITY_LEVELS),
                    "description": "経験レベル",
                },
            },
        },
    },
}

_TRANSIENT = (APIConnectionError, APITimeoutError, RateLimitError)


@dataclass
class ToolCallRecord:
    name: str
    args: dict[str, Any]
    results: dict[str, Any]


@dataclass
class AgentReply:
    text: str
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    data: Optional[dict[str, Any]] = None

    @property
    def jobs(self) -> list[dict[str, Any]]:
        return (self.data or {}).get("items", [])


def make_client(api_key: str | None = None) -> OpenAI:
    key = api_key or get_env("OPENAI_API_KEY")
    if not key:
        raise RuntimeError("OPENAI_API_KEY is not set")
    return OpenAI(api_key=key)


@retry(max_attempts=2, base_delay=2.0, retryable=_TRANSIENT)
def _complete(client: Any, **kwargs: Any) -> Any:
    return client.chat.completions.create(**kwargs)


def _assistant_turn(message: Any) -> dict[str, Any]:
    """Echo the model's tool-calling message back in request form."""
    return {
        "role": "assistant",
        "content": message.content,
        "tool_calls": [
            {
                "id": tc.id,
                "type": "function",
                "function": {
                    "name": tc.function.name,
                    "arguments": tc.function.arguments,
                },
            }
            for tc in message.tool_calls
        ],
    }


class CareerAgent:
    def __init__(
        self,
        client: Any = None,
        matcher: Optional[JobMatcher] = None,
        settings: Optional[dict[str, Any]] = None,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self._client = client
        self.matcher = matcher or JobMatcher(default_catalog())
        self.settings = (settings or load_settings())["llm"]
        self.system_prompt = system_prompt

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = make_client()
        return self._client

    def respond(self, user_input: str, history: list[dict[str, Any]] | None = None) -> AgentReply:
        if not user_input or not user_input.strip():
            raise ValueError("Input is required")

        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt},
            *(history or []),
            {"role": "user", "content": user_input},
        ]

        completion = _complete(
            self.client,
            model=self.settings["model"],
            messages=messages,
            tools=[SEARCH_JOBS_TOOL],
            tool_choice="auto",
            temperature=self.settings["temperature"],
            max_tokens=self.settings["max_tokens"],
        )
        message = completion.choices[0].message
        reply = AgentReply(text=message.content or "")

        if not message.tool_calls:
            return reply

        followup = [*messages, _assistant_turn(message)]
        for tool_call in message.tool_calls:
            content = self._run_tool(tool_call, reply)
            followup.append({
                "role": "tool",
                "tool_call_id": tool_call.id,
                "content": json.dumps(content, ensure_ascii=False),
            })
        followup.append({"role": "system", "content": RESULTS_PROMPT})

        second = _complete(
            self.client,
            model=self.settings["model"],
            messages=followup,
            temperature=self.settings["temperature"],
            max_tokens=self.settings["followup_max_tokens"],
        )
        reply.text = second.choices[0].message.content or ""
        log.info(
            "Reply after %d tool call(s), %d job(s) attached",
            len(reply.tool_calls), len(reply.jobs),
        )
        return reply

    def _run_tool(self, tool_call: Any, reply: AgentReply) -> dict[str, Any]:
        """Execute one tool call; failures become an error payload for the model."""
        name = tool_call.function.name
        if getattr(tool_call, "type", "function") != "function" or name != SEARCH_TOOL_NAME:
            log.warning("Model requested unknown tool %r", name)
            return {"error": f"unknown tool: {name}"}

        try:
            raw_args = json.loads(tool_call.function.arguments or "{}")
            query = SearchQuery.from_dict(raw_args)
        except (json.JSONDecodeError, ValueError) as exc:
            log.warning("Rejected %s arguments %r: %s", name, tool_call.function.arguments, exc)
            return {"error": f"invalid arguments: {exc}"}

        results = search_payload(self.matcher.search(query))
        reply.tool_calls.append(ToolCallRecord(name=name, args=query.to_dict(), results=results))
        reply.data = results
        log.info("search_jobs(%s) → %d item(s)", query.to_dict(), len(results["items"]))
        return results


def _text_of(message: dict[str, Any]) -> str:
    """Flatten a message to its text; parts other than text are dropped."""
    content = message.get("content")
    if isinstance(content, str):
        return content
    parts = message.get("parts") or content or []
    return "".join(
        p.get("text", "") for p in parts
        if isinstance(p, dict) and p.get("type") == "text"
    )


def stream_chat(
    messages: list[dict[str, Any]],
    client: Any = None,
    model: str | None = None,
) -> Iterator[str]:
    """Yield text deltas of a plain assistant completion as they arrive."""
    if not messages:
        raise ValueError("At least one message is required")

    client = client or make_client()
    model = model or load_settings()["llm"]["chat_model"]
    request = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
    request.extend(
        {"role": m["role"], "content": _text_of(m)}
        for m in messages
    )

    stream = _complete(client, model=model, messages=request, stream=True)
    chunks = 0
    for chunk in stream:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta.content
        if delta:
            chunks += 1
            yield delta
    log.debug("Streamed %d chunk(s) from %s", chunks, model)
