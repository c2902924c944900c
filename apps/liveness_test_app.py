import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio
import logging
import threading
import time
import tkinter as tk
from tkinter import ttk

import cv2
from PIL import Image, ImageTk

from config import settings, setup_logging
from core.frame_source import CameraSource, PushFrameSource
from core.liveness import LivenessDetector

logger = logging.getLogger("checkin.app")


STATUS_TEXT = {
    'no_face': ("No face - look at the camera", 'red'),
    'face_unstable': ("Face found - hold still", 'orange'),
    'face_stable': ("Face detected - turn your head left and right", 'blue'),
    'verified': ("Liveness verified", 'green'),
}


class LivenessTestApp:
    def __init__(self, root):
        self.root = root
        self.root.title("Check-in Liveness Test")
        self.root.geometry(f"{settings.WINDOW_WIDTH}x{settings.WINDOW_HEIGHT}")

        self.camera = None
        self.is_running = False
        self.frames = PushFrameSource()

        # Detector lives on its own event loop thread
        self.loop = asyncio.new_event_loop()
        self.loop_thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self.loop_thread.start()
        self.detector = LivenessDetector()
        self.detector.subscribe(self.on_state)

        self.frame_count = 0
        self.fps = 0
        self.last_time = time.time()

        self.setup_ui()
        self.load_models()

    def setup_ui(self):
        control_frame = ttk.Frame(self.root, padding="10")
        control_frame.pack(side=tk.TOP, fill=tk.X)

        ttk.Label(control_frame, text="Camera:").pack(side=tk.LEFT, padx=5)
        self.camera_var = tk.IntVar(value=settings.CAMERA_DEFAULT)
        camera_combo = ttk.Combobox(control_frame, textvariable=self.camera_var,
                                    values=[0, 1, 2, 3],
                                    state="readonly", width=8)
        camera_combo.pack(side=tk.LEFT, padx=5)

        ttk.Separator(control_frame, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=10)

        self.start_btn = ttk.Button(control_frame, text="▶ Start", command=self.start_camera)
        self.start_btn.pack(side=tk.LEFT, padx=5)

        self.stop_btn = ttk.Button(control_frame, text="⏹ Stop",
                                   command=self.stop_camera, state=tk.DISABLED)
        self.stop_btn.pack(side=tk.LEFT, padx=5)

        self.reset_btn = ttk.Button(control_frame, text="🔄 Retake", command=self.retake)
        self.reset_btn.pack(side=tk.LEFT, padx=5)

        main_frame = ttk.Frame(self.root, padding="10")
        main_frame.pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        left_frame = ttk.LabelFrame(main_frame, text="Live Video", padding="5")
        left_frame.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5)

        self.canvas_video = tk.Canvas(left_frame, width=settings.VIDEO_WIDTH,
                                      height=settings.VIDEO_HEIGHT, bg='black')
        self.canvas_video.pack()

        info_frame = ttk.LabelFrame(main_frame, text="Detection", padding="10")
        info_frame.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5)

        self.status_label = tk.Label(info_frame, text="Loading models...",
                                     font=('Arial', 12, 'bold'), wraplength=300, justify=tk.LEFT)
        self.status_label.pack(anchor=tk.W, pady=5)

        self.session_text = tk.Text(info_frame, height=12, width=40, font=('Courier', 9))
        self.session_text.pack(fill=tk.BOTH, expand=True)

        status_frame = ttk.Frame(self.root)
        status_frame.pack(side=tk.BOTTOM, fill=tk.X)

        self.status_bar = ttk.Label(status_frame, text="Ready", relief=tk.SUNKEN)
        self.status_bar.pack(fill=tk.X)

    def load_models(self):
        future = asyncio.run_coroutine_threadsafe(self.detector.load_models(), self.loop)
        future.add_done_callback(lambda _: self.root.after(0, self.show_model_status))

    def show_model_status(self):
        if self.detector.is_model_loaded:
            self.status_bar.config(text="Models loaded - Ready")
        else:
            self.status_bar.config(text=f"Error: {self.detector.error}")

    def on_state(self, det_state):
        # Called on the detector loop thread
        self.root.after(0, self.render_state, det_state, self.detector.session.snapshot())

    def render_state(self, det_state, snapshot):
        if det_state.error:
            self.status_label.config(text=det_state.error, fg='red')
        else:
            text, color = STATUS_TEXT[det_state.status]
            self.status_label.config(text=text, fg=color)

        self.session_text.delete(1.0, tk.END)
        self.session_text.insert(tk.END, f"Detecting:  {det_state.is_detecting}\n")
        for key, value in snapshot.items():
            if isinstance(value, float):
                value = f"{value:.1f}"
            self.session_text.insert(tk.END, f"{key}: {value}\n")

    def start_camera(self):
        try:
            self.camera = CameraSource(
                index=self.camera_var.get(),
                width=settings.CAMERA_WIDTH,
                height=settings.CAMERA_HEIGHT,
                mirror=settings.CAMERA_MIRROR,
            ).open()
        except RuntimeError as e:
            self.status_bar.config(text=f"Error: {e}")
            return

        self.is_running = True
        self.frames = PushFrameSource()
        self.start_btn.config(state=tk.DISABLED)
        self.stop_btn.config(state=tk.NORMAL)
        self.status_bar.config(text=f"Camera {self.camera.index} started")

        self.loop.call_soon_threadsafe(self.detector.start_detection, self.frames)

        self.video_thread = threading.Thread(target=self.update_frame, daemon=True)
        self.video_thread.start()

    def stop_camera(self):
        self.is_running = False
        self.loop.call_soon_threadsafe(self.detector.stop_detection)
        self.frames.close()

        if self.camera:
            self.camera.release()
            self.camera = None

        self.start_btn.config(state=tk.NORMAL)
        self.stop_btn.config(state=tk.DISABLED)
        self.status_bar.config(text="Camera stopped")

    def retake(self):
        def restart():
            self.detector.reset_detection()
            if self.is_running:
                self.detector.start_detection(self.frames)

        self.loop.call_soon_threadsafe(restart)
        self.status_bar.config(text="Detection reset")

    def update_frame(self):
        while self.is_running and self.camera:
            frame = self.camera.read()
            if frame is None:
                break

            self.frames.push(frame)

            self.frame_count += 1
            current_time = time.time()
            if current_time - self.last_time >= 1.0:
                self.fps = self.frame_count / (current_time - self.last_time)
                self.frame_count = 0
                self.last_time = current_time

            display = frame.copy()
            cv2.putText(display, f"FPS: {self.fps:.1f}", (10, 30),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 2)
            if self.detector.head_turn_detected:
                cv2.putText(display, "VERIFIED", (10, 60),
                            cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 0), 2)

            frame_rgb = cv2.cvtColor(display, cv2.COLOR_BGR2RGB)
            img = Image.fromarray(frame_rgb)
            img = img.resize((settings.VIDEO_WIDTH, settings.VIDEO_HEIGHT))
            photo = ImageTk.PhotoImage(image=img)

            self.canvas_video.create_image(0, 0, anchor=tk.NW, image=photo)
            self.canvas_video.image = photo

            time.sleep(0.01)

    def on_closing(self):
        self.stop_camera()
        # Model is released only after a running inference returns
        future = asyncio.run_coroutine_threadsafe(self.detector.aclose(), self.loop)
        future.add_done_callback(lambda _: self.loop.call_soon_threadsafe(self.loop.stop))
        self.root.destroy()


def main():
    setup_logging()
    root = tk.Tk()
    app = LivenessTestApp(root)
    root.protocol("WM_DELETE_WINDOW", app.on_closing)
    root.mainloop()


if __name__ == "__main__":
    main()
