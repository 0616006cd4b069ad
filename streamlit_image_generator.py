import streamlit as st
import asyncio
import logging
from datetime import datetime
from typing import Optional

from errors import ConfigurationError
from request_controller import GenerationState, ImageRequestController, RequestStatus
from settings import load_settings

logger = logging.getLogger(__name__)

# Configure Streamlit page
st.set_page_config(
    page_title="AI Image Generator",
    page_icon="🖼️",
    layout="centered"
)

# Custom CSS for the activity log and the error banner
st.markdown("""
<style>
.terminal-text {
    font-family: 'Courier New', monospace;
    background-color: #1e1e1e;
    color: #00ff00;
    padding: 6px 10px;
    border-radius: 5px;
    margin: 4px 0;
    font-size: 0.8rem;
}
.system-message { color: #00ffff; }
.error-message { color: #ff0000; }
.success-message { color: #00ff00; }
.stButton > button {
    width: 100%;
}
</style>
""", unsafe_allow_html=True)


class ImageGeneratorApp:
    """Single-page prompt form backed by an ImageRequestController"""

    def __init__(self):
        self.initialize_session_state()

    def initialize_session_state(self):
        """Initialize all session state variables"""
        defaults = {
            "prompt": "",
            "pending_prompt": None,
            "controller": None,
            "config_error": None,
            "messages": [],
            "generation_counter": 0,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        # Settings are read once per session
        if st.session_state.controller is None and st.session_state.config_error is None:
            try:
                st.session_state.controller = ImageRequestController(load_settings())
            except ConfigurationError as e:
                logger.error(f"Configuration error: {e}")
                st.session_state.config_error = str(e)

    @property
    def controller(self) -> Optional[ImageRequestController]:
        return st.session_state.controller

    def terminal_print(self, message: str, message_type: str = "info") -> str:
        """Format an activity log line"""
        color_map = {
            "info": "system-message",
            "error": "error-message",
            "success": "success-message"
        }
        color_class = color_map.get(message_type, "system-message")
        timestamp = datetime.now().strftime("%H:%M:%S")
        return f'<div class="terminal-text"><span class="{color_class}">[{timestamp}] {message}</span></div>'

    def add_message(self, content: str, message_type: str = "info"):
        st.session_state.messages.append(self.terminal_print(content, message_type))

    def log_transition(self, state: GenerationState):
        """Record controller state changes in the activity log"""
        if state.status is RequestStatus.LOADING:
            self.add_message(f"Attempt {state.attempt}/{state.max_attempts}...", "info")
        elif state.status is RequestStatus.SUCCEEDED:
            self.add_message(f"✅ Image ready ({state.image.mime_type})", "success")
        elif state.status is RequestStatus.FAILED:
            self.add_message(f"❌ {state.error}", "error")

    def request_generation(self):
        """Button callback: queue the prompt so the next run renders the busy UI first"""
        if self.controller is None or self.controller.is_loading:
            return
        st.session_state.pending_prompt = st.session_state.prompt

    def run_generation(self, prompt: str, status_slot):
        """Run one request cycle while the page shows the spinner"""

        def show_progress(state: GenerationState):
            self.log_transition(state)
            if state.is_loading:
                if state.attempt == 1:
                    st.session_state.generation_counter += 1
                status_slot.caption(f"Generating image (attempt {state.attempt}/{state.max_attempts})...")

        unsubscribe = self.controller.subscribe(show_progress)
        try:
            asyncio.run(self.controller.generate(prompt))
        finally:
            unsubscribe()
            st.session_state.pending_prompt = None

    def render_image_area(self, busy: bool):
        state = self.controller.state
        with st.container(border=True):
            if busy:
                with st.spinner("Generating image..."):
                    status_slot = st.empty()
                    if st.session_state.pending_prompt is not None:
                        self.run_generation(st.session_state.pending_prompt, status_slot)
                        st.rerun()
            elif state.status is RequestStatus.SUCCEEDED and state.image is not None:
                st.image(state.image.data, caption="Generated", width="stretch")
                st.download_button(
                    label="📥 Download",
                    data=state.image.data,
                    file_name=f"generated_{st.session_state.generation_counter:02d}.{state.image.extension}",
                    mime=state.image.mime_type,
                    key=f"download_{state.image.handle_id}"
                )
            else:
                st.markdown(
                    "<div style='text-align: center; color: gray; padding: 80px 0;'>"
                    "Generated image will appear here</div>",
                    unsafe_allow_html=True
                )

    def render_ui(self):
        """Render the main UI"""
        st.title("🖼️ AI Image Generator")

        if st.session_state.config_error:
            st.error(f"⚠️ {st.session_state.config_error}")
            st.stop()

        busy = st.session_state.pending_prompt is not None or self.controller.is_loading

        col1, col2 = st.columns([4, 1])
        with col1:
            st.text_input(
                "Enter your prompt",
                key="prompt",
                placeholder="A serene mountain landscape at sunset...",
                disabled=busy
            )
        with col2:
            st.write("")  # Spacing
            st.button(
                "Generate",
                type="primary",
                disabled=busy,
                on_click=self.request_generation,
                width="stretch"
            )

        state = self.controller.state
        if state.status is RequestStatus.FAILED and state.error and not busy:
            st.error(state.error)

        self.render_image_area(busy)

        # Sidebar
        with st.sidebar:
            st.subheader("📊 Session Stats")
            st.metric("Generation Runs", st.session_state.generation_counter)

            if st.button("🗑️ Clear", width="stretch", disabled=busy):
                self.controller.reset()
                st.session_state.messages = []
                st.rerun()

            st.divider()
            st.subheader("📜 Activity")
            for line in st.session_state.messages[-20:]:
                st.markdown(line, unsafe_allow_html=True)


def main():
    """Main application entry point"""
    app = ImageGeneratorApp()
    app.render_ui()


if __name__ == "__main__":
    main()
