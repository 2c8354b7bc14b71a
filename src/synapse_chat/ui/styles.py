"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.

Layout:
- Left: session sidebar
- Center: conversation, inline error notice, input bar
- Right: per-session settings
- Bottom (hidden by default): log panel
"""

APP_CSS = """
/* ============================================
   Main Layout - Sidebar | Chat | Settings
   ============================================ */
Screen {
    background: $background;
}

#main {
    height: 1fr;
}

/* ============================================
   Session Sidebar
   ============================================ */
#session-list {
    width: 32;
    height: 100%;
    background: $panel;
    border: round $secondary 60%;
    border-title-color: $secondary;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;

    &:focus-within {
        border: round $secondary;
    }

    & > ListItem {
        padding: 0 1;
        background: transparent;
    }

    & > ListItem.-current {
        background: $secondary 20%;
        text-style: bold;
    }

    & > ListItem.-generating Label {
        color: $warning;
    }
}

/* ============================================
   Chat Column
   ============================================ */
#chat-column {
    width: 1fr;
    height: 100%;
}

#chat-view {
    height: 1fr;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-title-align: left;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus-within {
        border: round $primary;
    }
}

.chat-message {
    width: 100%;
    height: auto;
    margin: 0 0 1 0;
    padding: 1 2;
    background: transparent;
}

.user-message {
    border-left: tall $success;
    background: $success 8%;

    & .message-header {
        color: $success;
        text-style: bold;
    }
}

.assistant-message {
    border-left: tall $secondary;
    background: $secondary 8%;

    & .message-header {
        color: $secondary;
        text-style: bold;
    }

    &.-streaming {
        border-left: tall $warning;
    }
}

.message-header {
    height: auto;
}

.message-content {
    height: auto;
    padding: 0;
    margin: 0;
}

.empty-chat {
    width: 100%;
    height: auto;
    padding: 2 4;
    color: $text-muted;
    text-align: center;
}

/* ============================================
   Error Notice - Dismissable Inline Error
   ============================================ */
#error-notice {
    height: auto;
    max-height: 6;
    padding: 0 2;
    margin: 0 0 1 0;
    background: $error 15%;
    border: tall $error;
    color: $foreground;
}

/* ============================================
   Chat Input Bar - Attach + Text Entry + Send
   ============================================ */
ChatInputBar {
    height: auto;
    background: $panel;
    border: round $primary 60%;

    &:focus-within {
        border: round $primary;
    }
}

#attachments {
    height: auto;
    padding: 0 1;
    color: $accent;
}

#input-row {
    height: 5;
}

#chat-input {
    width: 1fr;
    height: 100%;
    border: none;
    padding: 0 1;
    background: transparent;
}

#attach-btn {
    width: 10;
    height: 100%;
    min-width: 8;
}

#send-btn {
    width: 10;
    height: 100%;
    margin: 0 0 0 1;
    min-width: 8;
    text-style: bold;
}

/* ============================================
   Settings Panel
   ============================================ */
#settings-panel {
    width: 36;
    height: 100%;
    background: $panel;
    border: round $accent 60%;
    border-title-color: $accent;
    border-title-style: bold;
    padding: 0 1;

    &:focus-within {
        border: round $accent;
    }
}

.settings-label {
    height: 1;
    margin: 1 0 0 0;
    color: $text-muted;
}

#streaming-row {
    height: 3;
}

#system-instruction {
    height: 1fr;
    min-height: 5;
}

/* ============================================
   Log Panel
   ============================================ */
#log-panel {
    height: auto;
    min-height: 6;
    max-height: 14;
    background: $panel;
    border: round $warning 60%;
    border-title-color: $warning;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
}

/* ============================================
   Header and Footer
   ============================================ */
Header {
    background: $panel;
    color: $foreground;
    dock: top;
    height: 1;
}

Footer {
    background: $panel;
    height: auto;
}

Toast {
    background: $surface;
    border: tall $border;
    padding: 0 1;

    &.-error {
        border: tall $error;
        background: $error 12%;
    }

    &.-warning {
        border: tall $warning;
        background: $warning 12%;
    }
}

MarkdownFence {
    background: $panel;
    border: round $border;
    margin: 1 0;
    padding: 1;
}
"""
