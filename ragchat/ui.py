# Run from project root: streamlit run ragchat/ui.py
# UI talks to backend API (POST /conversation/{id}/ask/{strategy}, DELETE /conversation/{id}, POST /ingest). Chat history is stored on server by conversation id.

import os
import uuid
from datetime import date

import requests
import streamlit as st

# Backend config
API_BASE = os.environ.get("API_BASE", "http://localhost:8000")
STRATEGIES = ["DISABLED", "WEB_SEARCH", "VECTOR_STORE", "TOOLS"]

st.title("RAG Chat")

# Strategy (new conversation whenever it changes)
strategy = st.sidebar.selectbox("Chat type", STRATEGIES, key="strategy")
if st.session_state.get("active_strategy") != strategy:
    st.session_state.active_strategy = strategy
    st.session_state.conversation_id = str(uuid.uuid4())
    st.session_state.messages = [
        {"role": "assistant", "content": "Hello, how can I help you today?"},
    ]

st.caption(f"Chat [RAG: {strategy}] · conversation {st.session_state.conversation_id}")

# Clear this conversation's server-side history
if st.sidebar.button("Clear conversation", key="clear_conversation"):
    try:
        r = requests.delete(f"{API_BASE}/conversation/{st.session_state.conversation_id}", timeout=30)
        if r.ok:
            st.session_state.messages = st.session_state.messages[:1]
            st.rerun()
        else:
            st.sidebar.error(f"Failed to clear: {r.status_code} · {r.text[:200]}")
    except requests.RequestException as e:
        st.sidebar.error(f"Request failed: {e}")

# Add a coffee to the knowledge base
with st.sidebar.expander("Add a coffee"):
    with st.form("ingest_form", clear_on_submit=True):
        name = st.text_input("Name")
        origin = st.text_input("Origin")
        notes = st.text_input("Taste notes (comma separated)")
        roast_date = st.date_input("Roast date", value=date.today())
        roaster = st.text_input("Roaster")
        submitted = st.form_submit_button("Ingest")
    if submitted:
        payload = {
            "name": name,
            "origin": origin,
            "tasteNotes": [n.strip() for n in notes.split(",") if n.strip()],
            "roastDate": roast_date.isoformat(),
            "roaster": roaster,
        }
        try:
            r = requests.post(f"{API_BASE}/ingest", json=payload, timeout=60)
            if r.ok:
                st.success(f"Ingested {name}.")
            else:
                st.error(f"Ingestion failed: {r.status_code} — {r.text[:200]}")
        except requests.RequestException as e:
            st.error(f"Request failed: {e}")

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])

if question := st.chat_input("Type your message..."):
    st.session_state.messages.append({"role": "user", "content": question})
    with st.chat_message("user"):
        st.markdown(question)
    with st.chat_message("assistant"):
        try:
            r = requests.post(
                f"{API_BASE}/conversation/{st.session_state.conversation_id}/ask/{strategy}",
                json={"message": question},
                timeout=180,
            )
            if r.ok:
                answer = r.json().get("answer", "")
            else:
                answer = f"Error {r.status_code}: {r.text[:200]}"
        except requests.RequestException as e:
            answer = f"Backend not reachable — start the API first. ({e})"
        st.markdown(answer)
    st.session_state.messages.append({"role": "assistant", "content": answer})
