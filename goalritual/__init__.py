"""GoalRitual core library: recurring cycles, momentum scores, milestones and today's list.

Public API re-exports for convenient imports:
    from goalritual import Store, is_due, evaluate, propagate, ...
"""

# Workspace & config
from goalritual.workspace import (
    STATE_KEY,
    workspace_root,
    config_path,
    state_dir,
    get_settings,
    now_local,
    today_local,
)
from goalritual.config import Settings, load_settings, configure_logging

# File I/O
from goalritual.fileio import (
    read_json,
    read_yaml,
    write_json_atomic,
)

# Models
from goalritual.models import (
    CycleTask,
    CycleGroup,
    Milestone,
    Goal,
    DailyTodo,
    PinnedTask,
    RecurringDailyTask,
    DailyState,
    AppState,
    new_id,
)

# Recurrence clock
from goalritual.recurrence import (
    Occurrence,
    is_due,
    next_occurrence,
    describe_next,
    validate_schedule,
)

# Score ledger
from goalritual.score import clamp, apply as apply_score, classify, trend, format_score

# Reset engine
from goalritual.reset import AppliedReset, evaluate, reset_group, manual_reset

# Derived completion
from goalritual.milestones import propagate

# Daily list
from goalritual.daily import Rollover, rollover, roll_to, record_transition, today_view

# Store & persistence
from goalritual.store import Store, TickResult, run_tick
from goalritual.persistence import (
    Backend,
    MemoryBackend,
    FileBackend,
    DebouncedWriter,
    load_state,
    parse_state,
)
