"""LC3-SIM Interactive Demo.

A Gradio web interface for running LC-3 object images in the browser.

Usage:
    cd /path/to/lc3-sim
    python demo/gradio_app.py

Features:
    - Run built-in example programs or upload an .obj image
    - Feed keyboard input to GETC / IN / KBSR polling as a script
    - See console output, stop reason and final registers
"""

import io
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from lc3_sim import LoadError, ScriptedInput, Simulator, StopReason


# =============================================================================
# Example Programs (origin, words)
# =============================================================================

def _word_string(text: str) -> list:
    return [ord(c) for c in text] + [0]


EXAMPLE_PROGRAMS = {
    "Hello World (PUTS)": (0x3000, [
        0xE002,  # LEA R0, MSG
        0xF022,  # PUTS
        0xF025,  # HALT
    ] + _word_string("Hello, World!\n")),

    "Packed String (PUTSP)": (0x3000, [
        0xE002,  # LEA R0, MSG
        0xF024,  # PUTSP
        0xF025,  # HALT
        0x6948,  # "Hi"
        0x0A21,  # "!\n"
        0x0000,
    ]),

    "Echo Line (GETC/OUT)": (0x3000, [
        0xF020,  # LOOP GETC
        0x1421,  #      ADD R2, R0, #1     ; EOF reads as xFFFF
        0x0403,  #      BRz DONE
        0xF021,  #      OUT
        0x1236,  #      ADD R1, R0, #-10   ; newline?
        0x0BFA,  #      BRnp LOOP
        0xF025,  # DONE HALT
    ]),

    "Multiply 7x6": (0x3000, [
        0x5020,  # AND R0, R0, #0
        0x5260,  # AND R1, R1, #0
        0x1267,  # ADD R1, R1, #7
        0x54A0,  # AND R2, R2, #0
        0x14A6,  # ADD R2, R2, #6
        0x1001,  # LOOP ADD R0, R0, R1
        0x14BF,  #      ADD R2, R2, #-1
        0x03FD,  #      BRp LOOP
        0xF025,  # HALT                 ; R0 = 42
    ]),
}


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(example: str, image_path: str, keyboard_input: str, max_cycles: int) -> tuple:
    """Run an example or uploaded image and return results.

    Args:
        example: Name of a built-in example (ignored when an image is uploaded)
        image_path: Path of an uploaded .obj image, or None
        keyboard_input: Characters fed to the simulated keyboard
        max_cycles: Maximum executed instructions

    Returns:
        Tuple of (console_text, summary_text, registers_text)
    """
    output = io.BytesIO()
    sim = Simulator(
        keyboard=ScriptedInput(keyboard_input.replace("\r\n", "\n").encode("latin-1", "replace")),
        output=output,
        max_cycles=int(max_cycles),
    )

    try:
        if image_path:
            origin = sim.load_image(image_path)
            source = Path(image_path).name
        else:
            origin, words = EXAMPLE_PROGRAMS[example]
            sim.load_words(origin, words)
            source = example
    except (LoadError, KeyError) as e:
        return "", f"Error: {e}", ""

    result = sim.run()

    console_text = output.getvalue().decode("latin-1")

    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Program: {source}",
        f"Origin: 0x{origin:04X}",
        f"Stopped: {result.reason.value}",
        f"Cycles: {result.cycles}",
    ]
    if result.reason is StopReason.FAULT:
        summary_lines.append(f"\nFault: {result.error}")
    summary_text = "\n".join(summary_lines)

    reg_lines = [
        "FINAL REGISTERS",
        "=" * 30,
    ]
    for reg, value in sim.dump_registers().items():
        marker = " *" if value != 0 else ""
        reg_lines.append(f"  {reg}: 0x{value:04X} {value:>6}{marker}")
    reg_lines.append("")
    reg_lines.append(f"  PC:   0x{sim.get_pc():04X}")
    reg_lines.append(f"  COND: {sim.get_flag().name}")
    registers_text = "\n".join(reg_lines)

    return console_text, summary_text, registers_text


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="LC3-SIM Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # LC3-SIM: LC-3 Instruction-Set Simulator

        Runs LC-3 object images: 16-bit words, big-endian, first word is the
        load origin. Execution always starts at `x3000`.
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Hello World (PUTS)",
                    label="Built-in Example"
                )

                image_file = gr.File(
                    label="Or upload an .obj image",
                    file_types=[".obj", ".bin"],
                    type="filepath"
                )

                keyboard_input = gr.Textbox(
                    value="",
                    label="Keyboard Input",
                    lines=3,
                    placeholder="Characters returned by GETC / IN / KBDR..."
                )

                max_cycles = gr.Slider(
                    minimum=100,
                    maximum=1000000,
                    value=100000,
                    step=100,
                    label="Max Cycles"
                )

                run_button = gr.Button("Run", variant="primary")

            with gr.Column(scale=3):
                console_output = gr.Textbox(
                    label="Console",
                    lines=12,
                    interactive=False
                )
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Final Registers",
                        lines=10,
                        interactive=False
                    )

        with gr.Accordion("Trap Vectors", open=False):
            gr.Markdown("""
            | Vector | Name | Description |
            |--------|------|-------------|
            | `x20` | GETC | Read a character into R0 (no echo) |
            | `x21` | OUT | Write the low byte of R0 |
            | `x22` | PUTS | Write a word string starting at R0 |
            | `x23` | IN | Prompt, read and echo a character into R0 |
            | `x24` | PUTSP | Write a packed byte string starting at R0 |
            | `x25` | HALT | Stop the machine |
            """)

        run_button.click(
            fn=run_program,
            inputs=[example_dropdown, image_file, keyboard_input, max_cycles],
            outputs=[console_output, summary_output, registers_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
