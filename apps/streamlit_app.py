# apps/streamlit_app.py
from __future__ import annotations

# ---------- import bootstrap (make project root importable) ----------
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]  # repo root
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
# --------------------------------------------------------------------

import asyncio
import os
import streamlit as st
from dotenv import load_dotenv, find_dotenv

# Load .env early so key badges reflect env even before running
load_dotenv(find_dotenv(usecwd=True) or (ROOT / ".env"), override=False)

from stream_builder.export import to_file_map, write_files
from stream_builder.generate import generate
from stream_builder.registry import language_for_path
from stream_builder.session import Snapshot, StreamController, SessionSlot
from tools.llm_client import LLMClient
from tools.ui_utils import browser_rows, button_key, status_line


st.set_page_config(page_title="Streaming Site Builder", layout="wide")
st.title("⚡ Streaming Site Builder")

# ---- Sidebar Configuration ----
with st.sidebar:
    st.subheader("⚙️ Options")
    provider = st.selectbox("LLM provider", options=["groq", "openai", "anthropic"], index=0)
    st.number_input("Max tokens", key="LLM_MAX_TOKENS", min_value=256, value=int(os.getenv("LLM_MAX_TOKENS", "4000")))
    st.number_input("Timeout (s)", key="LLM_TIMEOUT", min_value=10, value=int(os.getenv("LLM_TIMEOUT", "300")))

    st.subheader("Output")
    base_dir = st.text_input("Write finished files to", value=str(Path.home() / "Downloads" / "Projects" / "generated-site"))
    mode = st.radio("If file exists", options=["overwrite", "skip"], index=0, horizontal=True)

    st.caption(
        f"OPENAI_API_KEY set: {'✅' if os.getenv('OPENAI_API_KEY') else '❌'}  |  "
        f"GROQ_API_KEY set: {'✅' if os.getenv('GROQ_API_KEY') else '❌'}  |  "
        f"ANTHROPIC_API_KEY set: {'✅' if os.getenv('ANTHROPIC_API_KEY') else '❌'}"
    )

# Session state: one slot per browser session, the last snapshot, and the log
st.session_state.setdefault("slot", SessionSlot())
st.session_state.setdefault("snapshot", None)
st.session_state.setdefault("log_messages", [])

# A rerun that tore down the previous script mid-stream leaves a streaming
# snapshot with no reader behind it; close that session out.
_stale = st.session_state.snapshot
if _stale is not None and _stale.is_streaming and st.session_state.slot.controller is not None:
    st.session_state.snapshot = st.session_state.slot.controller.interrupt()


def ui_log(m: str) -> None:
    st.session_state.log_messages.append(m)


def render_browser(snap: Snapshot, container, interactive: bool) -> None:
    with container.container():
        st.caption(status_line(snap))
        left, right = st.columns([0.3, 0.7])
        with left:
            for dir_label, entries in browser_rows(snap):
                st.markdown(f"**📁 {dir_label}**")
                for path, label in entries:
                    if interactive:
                        if st.button(label, key=button_key("select", path), use_container_width=True):
                            st.session_state.snapshot = st.session_state.slot.controller.select(path)
                            st.rerun()
                    else:
                        st.text(label)
        with right:
            selected = snap.selected_file
            if selected:
                st.markdown(f"`{selected.path}`")
                st.code(selected.content or " ", language=language_for_path(selected.path))


# ---- Main UI ----
prompt = st.text_area(
    "Describe the website you want",
    height=140,
    placeholder="E.g., A landing page for a coffee shop with a menu and a contact form",
)
run = st.button("✨ Generate", type="primary", key=button_key("run_generate"), disabled=not prompt.strip())
st.divider()

browser = st.empty()

if run:
    os.environ["LLM_PROVIDER"] = provider
    for key in ["LLM_MAX_TOKENS", "LLM_TIMEOUT"]:
        os.environ[key] = str(st.session_state.get(key, os.getenv(key, "")))
    os.environ.setdefault("LLM_LOG_FILE", str(ROOT / "logs" / "llm_calls.log"))

    st.session_state.log_messages = []
    st.session_state.snapshot = None

    def on_snapshot(snap: Snapshot) -> None:
        st.session_state.snapshot = snap
        render_browser(snap, browser, interactive=False)

    try:
        client = LLMClient(provider=provider)
    except (ValueError, RuntimeError) as e:
        st.error(f"Cannot start generation: {e}")
    else:
        controller: StreamController = st.session_state.slot.open(on_snapshot=on_snapshot, logger=ui_log)
        try:
            st.session_state.snapshot = asyncio.run(generate(prompt, controller, client))
        finally:
            # Streamlit stops a rerun with a BaseException raised from inside
            # on_snapshot; the session must still end in a terminal state.
            st.session_state.snapshot = controller.interrupt()
            # later selections are drawn by the next script run, not this one's placeholder
            controller.on_snapshot = None

snap = st.session_state.snapshot
if snap is not None:
    render_browser(snap, browser, interactive=not snap.is_streaming)

    if snap.session_status == "completed":
        a, b = st.columns([0.4, 0.6])
        with a:
            if st.button("💾 Write files", key=button_key("write_files")):
                result = write_files(snap.files, base_dir, if_exists=mode, logger=ui_log)
                st.success(str(result))
        with b:
            with st.expander("Sandbox file map"):
                st.json(to_file_map(snap.files))
    elif snap.session_status == "errored":
        st.error("Generation failed. Start a new one to retry.")

if st.session_state.log_messages:
    with st.expander("🪵 Run Logs", expanded=False):
        st.text_area("Logs", "\n".join(st.session_state.log_messages), height=240, label_visibility="collapsed")
