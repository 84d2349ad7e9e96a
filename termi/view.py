from __future__ import annotations

from typing import Dict, List

from . import ux
from .errors import describe
from .state import (
    Analyzing,
    Asking,
    Canceled,
    Completed,
    Copied,
    DialogueState,
    Failed,
    Init,
    Selecting,
)

TEXT: Dict[str, Dict[str, str]] = {
    "zh": {
        "init": "🚀 Termi",
        "initializing": "初始化中...",
        "analyzing": "🧠 分析中",
        "analyzing_query": "正在分析您的需求: ",
        "wait": "请稍候...",
        "original": "🎯 原始需求: ",
        "history": "对话历史:",
        "asking_help": "Enter: 提交, Ctrl+C/Esc: 取消",
        "choose": "🚀 选择要执行的命令:",
        "no_candidates": "❌ 没有可执行的候选命令。",
        "selecting_help": "↑/↓ 或 k/j: 选择, Enter: 执行, c: 复制, q/Esc: 退出",
        "completed": "✅ 准备执行命令",
        "copied": "📋 已复制到剪贴板:",
        "error": "❌ 错误",
        "error_detail": "发生错误: {message}",
        "canceled": "🚫 已取消",
        "canceled_detail": "操作已取消",
        "running": "执行命令: {command}",
        "usage": "请在命令后输入自然语言，例如：\n  termi 我想对 baidu.com 发起 ping",
        "run_failed": "命令执行失败: {error}",
    },
    "en": {
        "init": "🚀 Termi",
        "initializing": "Starting...",
        "analyzing": "🧠 Analyzing",
        "analyzing_query": "Working out your request: ",
        "wait": "Please wait...",
        "original": "🎯 Request: ",
        "history": "Conversation so far:",
        "asking_help": "Enter: submit, Ctrl+C/Esc: cancel",
        "choose": "🚀 Choose the command to run:",
        "no_candidates": "❌ No runnable candidate command.",
        "selecting_help": "↑/↓ or k/j: move, Enter: run, c: copy, q/Esc: quit",
        "completed": "✅ Ready to run the command",
        "copied": "📋 Copied to clipboard:",
        "error": "❌ Error",
        "error_detail": "Something went wrong: {message}",
        "canceled": "🚫 Canceled",
        "canceled_detail": "Operation canceled",
        "running": "Running: {command}",
        "usage": "Describe what you want after the command, for example:\n  termi ping baidu.com",
        "run_failed": "Could not run the command: {error}",
    },
}


def texts(lang: str) -> Dict[str, str]:
    return TEXT.get(lang, TEXT["zh"])


def _asking(state: Asking, t: Dict[str, str]) -> str:
    lines: List[str] = [ux.title(t["original"]) + ux.italic(state.query), ""]
    if state.context:
        lines.append(ux.faint(t["history"]))
        for i, entry in enumerate(state.context, 1):
            lines.append(ux.faint(f"{i}. {entry}"))
        lines.append("")
    lines.append(ux.title("❓ ") + state.prompt)
    lines.append("")
    lines.append(f"> {state.buffer}█")
    lines.append("")
    lines.append(ux.faint(t["asking_help"]))
    return "\n".join(lines)


def _selecting(state: Selecting, t: Dict[str, str]) -> str:
    if not state.candidates:
        return ux.error(t["no_candidates"])
    lines: List[str] = [ux.title(t["choose"]), ""]
    for i, item in enumerate(state.candidates):
        if i == state.cursor:
            lines.append(ux.selected("➜ ") + ux.selected(item.text) + " " + ux.tag(item.source))
        else:
            lines.append("  " + item.text + " " + ux.tag(item.source))
    lines.append("")
    lines.append(ux.faint(t["selecting_help"]))
    return "\n".join(lines)


def render(state: DialogueState, frame: int = 0, lang: str = "zh") -> str:
    """Text for ``state``. Reads the state only."""
    t = texts(lang)
    if isinstance(state, Init):
        return f"{ux.title(t['init'])}\n\n{ux.spinner(frame)} {t['initializing']}"
    if isinstance(state, Analyzing):
        return (
            f"{ux.title(t['analyzing'])}\n\n"
            f"{ux.spinner(frame)} {t['analyzing_query']}{ux.italic(state.query)}\n\n"
            f"{ux.faint(t['wait'])}"
        )
    if isinstance(state, Asking):
        return _asking(state, t)
    if isinstance(state, Selecting):
        return _selecting(state, t)
    if isinstance(state, Completed):
        return ux.success(t["completed"])
    if isinstance(state, Copied):
        return f"{ux.success(t['copied'])}\n  {state.command}"
    if isinstance(state, Failed):
        message = describe(state.error, lang)
        return f"{ux.title(t['error'])}\n\n{ux.error(t['error_detail'].format(message=message))}"
    if isinstance(state, Canceled):
        return f"{ux.title(t['canceled'])}\n\n{ux.faint(t['canceled_detail'])}"
    raise TypeError(f"Unknown dialogue state: {state!r}")
