"""
Shekho - Learn Bengali

Streamlit front end for the Shekho curriculum: a grammar path of
flashcard modules and a conversation mode of short illustrated dialogues.

Usage:
    streamlit run app.py
"""

import logging

import streamlit as st

from shekho.classroom import (
    ConversationLessonView,
    ConversationList,
    CurriculumLoader,
    GrammarUnit,
    Landing,
    LessonSession,
    ModeSelectHome,
    ModuleSession,
    Navigator,
    ProgressStore,
    SQLiteKeyValueStore,
    get_policy,
    logging_sink,
    resolve_asset,
)
from shekho.config import Settings, load_settings
from shekho.errors import ContentNotFound
from shekho.schemas import LetterItem, WordItem
from shekho.speech import GoogleSynthesizer, HttpSynthesizer, PlaybackState, SpeechCoordinator


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

AUDIO_POLL_SECONDS = 0.5

settings = load_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="Shekho",
    page_icon="📖",
    layout="centered",
)


def build_synthesizer(settings: Settings):
    if settings.tts_backend == "http":
        return HttpSynthesizer(settings.tts_endpoint, timeout=settings.tts_timeout)
    return GoogleSynthesizer()


# -----------------------------------------------------------------------------
# Session State Initialization
# -----------------------------------------------------------------------------

def init_session_state():
    """Initialize session state variables."""
    if "navigator" not in st.session_state:
        loader = CurriculumLoader.from_yaml()
        store = ProgressStore(SQLiteKeyValueStore(settings.progress_db))
        speech = SpeechCoordinator(build_synthesizer(settings))
        st.session_state.speech = speech
        st.session_state.navigator = Navigator(
            loader,
            store,
            policy=get_policy(settings.reachability, loader.unit_keys),
            speech=speech,
        )

    if "expanded_phases" not in st.session_state:
        st.session_state.expanded_phases = st.session_state.navigator.default_expanded_phases()

    if "awaiting_audio" not in st.session_state:
        st.session_state.awaiting_audio = False

    if "content_session" not in st.session_state:
        st.session_state.content_session = None


def navigate(action, *args):
    """Run a navigator transition, drop the content session, and rerun."""
    action(*args)
    st.session_state.awaiting_audio = False
    st.session_state.content_session = None
    st.rerun()


def get_module_session(unit_key: str) -> ModuleSession:
    session = st.session_state.content_session
    if not isinstance(session, ModuleSession) or session.unit_key != unit_key:
        session = ModuleSession(
            st.session_state.navigator, unit_key, speech=st.session_state.speech, sink=logging_sink
        )
        st.session_state.content_session = session
    return session


def get_lesson_session(lesson_id: int) -> LessonSession:
    session = st.session_state.content_session
    if not isinstance(session, LessonSession) or session.lesson_id != lesson_id:
        session = LessonSession(
            st.session_state.navigator, lesson_id, speech=st.session_state.speech, sink=logging_sink
        )
        st.session_state.content_session = session
    return session


# -----------------------------------------------------------------------------
# Audio
# -----------------------------------------------------------------------------

def play(start):
    """Start a clip; watch_audio reruns the page once it is synthesized."""
    handle = start()
    if handle is None:
        return
    st.session_state.awaiting_audio = True
    st.rerun()


@st.fragment(run_every=AUDIO_POLL_SECONDS)
def watch_audio():
    """Poll the pending clip without holding up the rest of the page."""
    current = st.session_state.speech.current
    if current is not None and current.state == PlaybackState.LOADING:
        st.caption("Generating audio...")
        return
    st.session_state.awaiting_audio = False
    st.rerun()


def render_audio():
    """Render the clip waiting to be heard, or the last synthesis error."""
    speech = st.session_state.speech

    if st.session_state.awaiting_audio:
        watch_audio()

    handle = speech.player.take()
    if handle is not None and handle.audio:
        st.audio(handle.audio, format="audio/mp3", autoplay=True)
        speech.finished(handle)

    if speech.last_error:
        st.warning(f"Failed to play audio: {speech.last_error}")
        speech.last_error = None


# -----------------------------------------------------------------------------
# Landing
# -----------------------------------------------------------------------------

def render_landing():
    nav = st.session_state.navigator

    st.title("Shekho")
    st.caption("Learn Bengali")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Grammar Path", use_container_width=True, type="primary"):
            navigate(nav.choose_grammar)
    with col2:
        if st.button("Conversation Mode", use_container_width=True):
            navigate(nav.choose_conversation)


# -----------------------------------------------------------------------------
# Grammar Home
# -----------------------------------------------------------------------------

def render_grammar_home():
    nav = st.session_state.navigator

    st.title("Shekho")
    if st.button("Home"):
        navigate(nav.back_to_landing)

    stats = nav.get_progress_summary()
    st.markdown(
        f"**Progress:** {stats['completed']}/{stats['total_units']} modules ({stats['completion_percent']}%)"
    )
    st.progress(stats["completion_percent"] / 100)

    for nav_phase in nav.get_navigation_tree():
        expanded = nav_phase.index in st.session_state.expanded_phases
        label = f"**{nav_phase.phase.title}** ({nav_phase.completed_count}/{nav_phase.total_count})"
        with st.expander(label, expanded=expanded):
            for nav_module in nav_phase.modules:
                if st.button(
                    f"{nav_module.indicator} {nav_module.module.title}",
                    key=f"unit_{nav_module.unit_key}",
                    disabled=not nav_module.is_reachable,
                    type="primary" if nav_module.is_current else "secondary",
                    help=nav_module.availability.value.capitalize(),
                    use_container_width=True,
                ):
                    st.session_state.expanded_phases.add(nav_phase.index)
                    navigate(nav.select_unit, nav_module.unit_key)

    st.divider()
    if st.button("Reset progress"):
        nav.reset_progress()
        st.session_state.expanded_phases = set()
        st.rerun()


# -----------------------------------------------------------------------------
# Grammar Unit
# -----------------------------------------------------------------------------

def render_grammar_unit(unit_key: str):
    nav = st.session_state.navigator

    try:
        session = get_module_session(unit_key)
    except ContentNotFound:
        st.error(f"Module not found: {unit_key}")
        if st.button("Home"):
            navigate(nav.go_home)
        return

    col1, col2 = st.columns([1, 3])
    with col1:
        if st.button("Home"):
            navigate(session.go_home)
    with col2:
        st.caption(session.breadcrumb)

    cursor = session.cursor
    st.header(cursor.module.heading)

    item = cursor.current_item
    if item is None:
        st.info("This module is coming soon.")
        return

    st.subheader(cursor.section_title)
    if cursor.note:
        st.markdown(cursor.note)

    render_audio()

    with st.container(border=True):
        if isinstance(item, LetterItem):
            st.markdown(f"# {item.bengali}")
            st.markdown(item.transliteration)
        elif isinstance(item, WordItem):
            if cursor.is_revealed:
                st.markdown(f"### {item.english}")
            else:
                st.markdown(f"# {item.bengali}")
                st.markdown(item.transliteration)
            if st.button("Show Bengali" if cursor.is_revealed else "Show English", key="flip"):
                session.toggle_reveal()
                st.rerun()

        if st.button("🔊 Play pronunciation", disabled=session.audio_busy, key="speak"):
            play(session.speak)

    col1, col2 = st.columns(2)
    with col1:
        if cursor.can_go_back and st.button("Back", use_container_width=True):
            session.prev()
            st.rerun()
    with col2:
        if st.button(cursor.next_label, use_container_width=True, type="primary"):
            session.next()
            if session.completed:
                st.session_state.content_session = None
            st.rerun()


# -----------------------------------------------------------------------------
# Conversation Mode
# -----------------------------------------------------------------------------

def render_conversation_list():
    nav = st.session_state.navigator

    st.title("Conversation Mode")
    st.caption("Master conversational Bengali")
    if st.button("Home"):
        navigate(nav.back_to_landing)

    for listing in nav.loader.get_lesson_listings():
        if st.button(listing.title, key=f"lesson_{listing.id}", use_container_width=True):
            navigate(nav.select_lesson, listing.id)


def render_conversation_lesson(lesson_id: int):
    nav = st.session_state.navigator

    try:
        session = get_lesson_session(lesson_id)
    except ContentNotFound:
        st.title(f"Lesson {lesson_id}")
        if st.button("Home"):
            navigate(nav.leave_lesson)
        st.info("Lesson content not found.")
        return

    col1, col2 = st.columns([3, 1])
    with col1:
        st.title(session.title)
    with col2:
        if st.button("Home"):
            navigate(session.back)

    cursor = session.cursor
    scenario = cursor.current_scenario

    image_path = resolve_asset(scenario.image, settings.assets_dir)
    if image_path is not None:
        st.image(str(image_path), caption="Conversation Context")
    else:
        with st.container(border=True):
            st.caption(f"🖼️ Conversation Context ({scenario.image.lstrip('/')} not available)")

    render_audio()

    # Script card
    with st.container(border=True):
        for line in scenario.conversation:
            if cursor.is_script_revealed:
                st.markdown(f"**{line.speaker}:** {line.english}")
            else:
                st.markdown(f"**{line.speaker}:** {line.bengali}  \n*{line.transliteration}*")
        label = "Tap to see original" if cursor.is_script_revealed else "Tap to see translation"
        if st.button(label, key="script_flip"):
            session.toggle_script()
            st.rerun()

    if st.button("🔊 Play Conversation", disabled=session.audio_busy, key="play_conversation"):
        play(session.play_conversation)

    # Vocabulary
    st.subheader("Vocabulary Breakdown")
    st.caption(cursor.progress_label)
    vocab = cursor.current_vocab
    with st.container(border=True):
        if vocab is not None:
            if cursor.is_vocab_revealed:
                st.markdown(f"### {vocab.english}")
            else:
                st.markdown(f"# {vocab.bengali}")
                st.markdown(vocab.transliteration)
        if st.button("Flip", key="vocab_flip"):
            session.toggle_vocab()
            st.rerun()
        if st.button("🔊", disabled=session.audio_busy, key="play_vocab"):
            play(session.play_vocab)

    col1, col2 = st.columns(2)
    with col1:
        if st.button(cursor.next_label, use_container_width=True, type="primary"):
            session.next()
            if session.finished:
                st.session_state.content_session = None
            st.rerun()
    with col2:
        if st.button("Back", use_container_width=True, disabled=cursor.vocab_index == 0):
            session.prev()
            st.rerun()

    if scenario.notes:
        st.subheader(scenario.notes.title)
        for note in scenario.notes.content:
            st.markdown(f"- {note}")


# -----------------------------------------------------------------------------
# Main App
# -----------------------------------------------------------------------------

def main():
    """Main application entry point."""
    init_session_state()

    view = st.session_state.navigator.view
    if isinstance(view, Landing):
        render_landing()
    elif isinstance(view, ModeSelectHome):
        render_grammar_home()
    elif isinstance(view, GrammarUnit):
        render_grammar_unit(view.unit_key)
    elif isinstance(view, ConversationList):
        render_conversation_list()
    elif isinstance(view, ConversationLessonView):
        render_conversation_lesson(view.lesson_id)
    else:
        raise TypeError(f"Unhandled view: {view!r}")


if __name__ == "__main__":
    main()
