import os

from motion_goal_bridge.logging_utils import MotionLogger


def read_log(logger):
    for handler in logger.file_logger.handlers:
        handler.flush()
    with open(logger.get_log_file_path()) as f:
        return f.read()


def test_log_file_created_in_given_dir(motion_logger, tmp_path):
    path = motion_logger.get_log_file_path()
    assert os.path.dirname(path) == str(tmp_path / 'logs')
    assert os.path.basename(path).startswith('motion_goal_bridge_')
    assert 'Motion Goal Bridge Log Started' in read_log(motion_logger)


def test_goal_events_terminal_and_file(motion_logger, ros_logger):
    motion_logger.goal_start('g1', 'named_target')
    motion_logger.goal_progress('g1', 'synthesizing')
    motion_logger.goal_complete('g1', False, 'aborted')

    assert ('info', '[goal g1] Started: named_target') in ros_logger.messages
    assert ('error', '[goal g1] FAILED: aborted') in ros_logger.messages
    # progress stays out of the terminal
    assert not any('synthesizing' in m for _, m in ros_logger.messages)

    content = read_log(motion_logger)
    assert '>>> [goal g1] Started' in content
    assert '[goal g1] synthesizing' in content
    assert '<<< [goal g1] FAILED: aborted' in content


def test_debug_is_file_only(motion_logger, ros_logger):
    motion_logger.debug('fraction=100%')

    assert ros_logger.messages == []
    assert '[DEBUG] fraction=100%' in read_log(motion_logger)


def test_two_loggers_do_not_share_handlers(ros_logger, tmp_path):
    first = MotionLogger(ros_logger, str(tmp_path / 'a'))
    second = MotionLogger(ros_logger, str(tmp_path / 'b'))
    try:
        first.warn('only first')
        assert 'only first' in read_log(first)
        assert 'only first' not in read_log(second)
    finally:
        first.close()
        second.close()


def test_default_log_dir_under_cwd(ros_logger, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    logger = MotionLogger(ros_logger)
    try:
        expected = tmp_path / 'ros_logging' / 'motion_goal_bridge'
        assert os.path.dirname(logger.get_log_file_path()) == str(expected)
    finally:
        logger.close()
