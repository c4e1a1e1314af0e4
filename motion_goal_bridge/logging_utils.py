"""
Two-channel logging for goal lifecycles.

The node's rclpy logger gets one line when a goal starts, one when it ends,
and any warnings or errors. A per-run log file gets the same plus every
lifecycle stage and debug detail, so a failed goal can be traced afterwards
without flooding the terminal.
"""

import logging
import os
from datetime import datetime
from pathlib import Path

DEFAULT_LOG_DIR = os.path.join("ros_logging", "motion_goal_bridge")


class MotionLogger:
    """
    Goal-aware logger passed to every pipeline component.

    ``log_dir`` defaults to ``./ros_logging/motion_goal_bridge``. Each
    instance writes its own ``motion_goal_bridge_<timestamp>.log``.
    """

    def __init__(self, ros_logger, log_dir: str = None):
        self.ros_logger = ros_logger

        log_dir = log_dir or os.path.join(os.getcwd(), DEFAULT_LOG_DIR)
        Path(log_dir).mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.log_file_path = os.path.join(log_dir, f"motion_goal_bridge_{timestamp}.log")

        # Logger name carries the id so two instances never share handlers
        self.file_logger = logging.getLogger(f"motion_goal_bridge.run_{timestamp}_{id(self)}")
        self.file_logger.setLevel(logging.DEBUG)
        self.file_logger.propagate = False

        self._file_handler = logging.FileHandler(self.log_file_path)
        self._file_handler.setLevel(logging.DEBUG)
        self._file_handler.setFormatter(
            logging.Formatter('%(asctime)s.%(msecs)03d %(message)s', datefmt='%H:%M:%S')
        )
        self.file_logger.addHandler(self._file_handler)

        self.file_logger.info("========================================")
        self.file_logger.info("Motion Goal Bridge Log Started")
        self.file_logger.info("========================================")

    # === Goal lifecycle ===

    def goal_start(self, goal_id: str, details: str = ""):
        msg = f"[goal {goal_id}] Started"
        if details:
            msg += f": {details}"
        self.ros_logger.info(msg)
        self.file_logger.info(f">>> {msg}")

    def goal_progress(self, goal_id: str, step: str):
        """Stage transitions and checkpoints, file only."""
        self.file_logger.info(f"  [goal {goal_id}] {step}")

    def goal_complete(self, goal_id: str, success: bool, message: str = ""):
        """Terminal outcome; failures reach the terminal at error level."""
        msg = f"[goal {goal_id}] {'OK' if success else 'FAILED'}"
        if message:
            msg += f": {message}"

        if success:
            self.ros_logger.info(msg)
        else:
            self.ros_logger.error(msg)
        self.file_logger.info(f"<<< {msg}")

    # === Plain messages ===

    def info(self, message: str):
        self.ros_logger.info(message)
        self.file_logger.info(message)

    def debug(self, message: str):
        """File only."""
        self.file_logger.debug(f"  [DEBUG] {message}")

    def warn(self, message: str):
        self.ros_logger.warn(message)
        self.file_logger.warning(f"[WARN] {message}")

    def error(self, message: str):
        self.ros_logger.error(message)
        self.file_logger.error(f"[ERROR] {message}")

    def close(self):
        """Detach and close the file handler; the ros logger stays usable."""
        self.file_logger.removeHandler(self._file_handler)
        self._file_handler.close()

    def get_log_file_path(self) -> str:
        return self.log_file_path
