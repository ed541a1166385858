"""Test package for quizplay.

Core modules are tested directly with a fake clock; the pygame host is
exercised headlessly through ``run(max_frames=..., event_injector=...)`` with
SDL's dummy drivers. Run ``pytest`` from the project root.
"""
