#! /usr/bin/env python
"""Collecting and summarising rule outcomes"""

import threading

from .core import Classification, RequirementLevel, Result


#: how a Fail outcome is classified, keyed on requirement level
FAIL_CLASSIFICATION = {
    RequirementLevel.Must: Classification.error,
    RequirementLevel.MustNot: Classification.error,
    RequirementLevel.Should: Classification.warning,
    RequirementLevel.ShouldNot: Classification.warning,
    RequirementLevel.May: Classification.recommendation,
    RequirementLevel.Recommended: Classification.recommendation,
    }


def classify_outcome(outcome):
    """Returns the :class:`Classification` of a :class:`RuleOutcome`"""
    if outcome.result == Result.Pass:
        return Classification.success
    elif outcome.result == Result.NotApplicable:
        return Classification.notApplicable
    elif outcome.result == Result.Error:
        return Classification.aborted
    return FAIL_CLASSIFICATION.get(outcome.requirement_level,
                                   Classification.warning)


class ResultCollector(object):

    """A result provider that stores outcomes

    Instances may be passed to a :class:`Dispatcher` as its provider,
    outcomes arrive in completion order from the worker threads.  The
    collector can be waited on with :meth:`wait`."""

    def __init__(self):
        self.lock = threading.Lock()
        self.outcomes = []
        self.error_occurred = None
        self._done = threading.Event()

    def accept(self, outcome):
        with self.lock:
            self.outcomes.append(outcome)

    def job_completed(self, error_occurred):
        with self.lock:
            self.error_occurred = error_occurred
        self._done.set()

    def wait(self, timeout=None):
        """Waits for the job to complete, returns True if it did"""
        return self._done.wait(timeout)

    def counts(self):
        """Returns a dictionary mapping :class:`Classification` values
        to the number of outcomes with that classification"""
        result = dict((c, 0) for c in Classification.values())
        with self.lock:
            for outcome in self.outcomes:
                result[classify_outcome(outcome)] += 1
        return result

    def failed(self):
        """Returns True if any MUST rule failed or a rule aborted"""
        c = self.counts()
        return bool(c[Classification.error] or c[Classification.aborted])

    def summary(self):
        """Returns a one line text summary"""
        c = self.counts()
        with self.lock:
            total = len(self.outcomes)
        return "%i rule(s): %s" % (total, ", ".join(
            "%s %i" % (Classification.to_str(k), c[k])
            for k in sorted(c.keys()) if c[k]))


def format_outcome(outcome):
    """Formats an outcome as a single line of text"""
    line = "%-40s %-14s %s" % (
        outcome.rule_name, Classification.to_str(classify_outcome(outcome)),
        RequirementLevel.to_str(outcome.requirement_level))
    if outcome.message:
        line = "%s: %s" % (line, outcome.message)
    return line
