#! /usr/bin/env python
"""Runs rules against a context

The :class:`Dispatcher` takes a fully constructed
:class:`ServiceContext` and a collection of rules and returns one
:class:`RuleOutcome` per rule.  Rules are independent of each other so
they are run concurrently on a small pool of worker threads.  A rule
that raises an exception, or that runs for longer than the configured
timeout, is recorded with :attr:`Result.Error` and never stops the
remaining rules from running."""

import logging
import queue
import threading
import time

from .core import Result
from .errors import RuleInvocationFault, RuleTimeout
from .selector import is_applicable


#: message recorded for rules that were never invoked
NOT_APPLICABLE = "not applicable to this payload"

#: message recorded for rules that decided they did not apply
RUNTIME_NOT_APPLICABLE = "rule found nothing to verify"

#: message recorded for rules skipped because the run was cancelled
CANCELLED = "cancelled"


class RuleOutcome(object):

    """The outcome of a single rule

    rule_name, category, requirement_level
        Copied from the rule's declaration

    result
        A :class:`Result` value.  Error means the rule itself failed,
        it does not say anything about the service.

    message
        A human readable message, for Fail outcomes the rule's violation
        message

    details
        For Fail outcomes the :class:`ViolationInfo`, for Error outcomes
        the :class:`RuleInvocationFault`, otherwise None

    elapsed
        The time, in seconds, spent running the rule (0 if it was not
        invoked)"""

    def __init__(self, rule_name, category, requirement_level, result,
                 message=None, details=None, elapsed=0.0):
        self.rule_name = rule_name
        self.category = category
        self.requirement_level = requirement_level
        self.result = result
        self.message = message
        self.details = details
        self.elapsed = elapsed

    @classmethod
    def from_rule(cls, rule, result, message=None, details=None,
                  elapsed=0.0):
        return cls(rule.name, rule.category, rule.requirement_level,
                   result, message, details, elapsed)

    def is_error(self):
        return self.result == Result.Error

    def __repr__(self):
        return "RuleOutcome(%s, %s)" % (repr(self.rule_name),
                                        Result.to_str(self.result))


class _Invocation(object):

    """Runs a single rule on a daemon thread"""

    def __init__(self, rule, context):
        self.rule = rule
        self.context = context
        self.value = None
        self.error = None

    def run(self):
        try:
            self.value = self.rule.verify(self.context)
        except Exception as err:
            self.error = err

    def start(self, timeout):
        if timeout is None:
            self.run()
            return True
        t = threading.Thread(target=self.run,
                             name="rule:%s" % self.rule.name)
        t.daemon = True
        t.start()
        t.join(timeout)
        return not t.is_alive()


class Dispatcher(object):

    """Runs rules concurrently

    settings
        An :class:`EngineSettings` instance, the workers, rule_timeout
        and categories settings are used

    registry
        The :class:`RuleRegistry` used by :meth:`dispatch`

    provider
        An optional result provider, an object with methods
        accept(outcome) and job_completed(error_occurred).  accept is
        called from the worker threads as each rule completes.  Errors
        raised by the provider are logged, they do not stop the run."""

    def __init__(self, settings, registry=None, provider=None):
        self.settings = settings
        self.registry = registry
        self.provider = provider

    def dispatch(self, context, cancel=None):
        """Runs the registered rules against *context*

        Rules outside the categories named in the settings are not
        candidates and do not appear in the result."""
        if self.registry is None:
            raise ValueError("Dispatcher has no rule registry")
        categories = self.settings.categories
        rules = [r for r in self.registry
                 if categories is None or r.category in categories]
        return self.run_all(rules, context, cancel)

    def run_all(self, rules, context, cancel=None):
        """Runs *rules* against *context*

        rules
            An iterable of :class:`Rule` instances

        cancel
            An optional threading.Event, once set no further rules are
            started

        Returns a list of :class:`RuleOutcome` in the same order as
        *rules*, rules that do not apply to the context are recorded as
        NotApplicable without being invoked."""
        if context is None:
            raise TypeError("run_all requires a context")
        rules = list(rules)
        outcomes = [None] * len(rules)
        q = queue.Queue()
        for i, rule in enumerate(rules):
            if is_applicable(rule, context):
                q.put((i, rule))
            else:
                self._record(outcomes, i, RuleOutcome.from_rule(
                    rule, Result.NotApplicable, NOT_APPLICABLE))
        nworkers = min(self.settings.workers, q.qsize())
        logging.info("Dispatching %i of %i rules on %i thread(s) for %s",
                     q.qsize(), len(rules), nworkers, context.destination)
        workers = []
        for i in range(nworkers):
            t = threading.Thread(target=self._worker,
                                 args=(q, context, outcomes, cancel),
                                 name="dispatcher-%i" % i)
            t.start()
            workers.append(t)
        for t in workers:
            t.join()
        error_occurred = any(o.result == Result.Error for o in outcomes)
        if self.provider is not None:
            try:
                self.provider.job_completed(error_occurred)
            except Exception as err:
                logging.warning("Result provider failed to complete job: %s",
                                str(err))
        return outcomes

    def _worker(self, q, context, outcomes, cancel):
        while True:
            try:
                i, rule = q.get_nowait()
            except queue.Empty:
                break
            if cancel is not None and cancel.is_set():
                outcome = RuleOutcome.from_rule(
                    rule, Result.NotApplicable, CANCELLED)
            else:
                outcome = self.invoke(rule, context)
            self._record(outcomes, i, outcome)

    def _record(self, outcomes, i, outcome):
        outcomes[i] = outcome
        if self.provider is not None:
            try:
                self.provider.accept(outcome)
            except Exception as err:
                logging.warning("Result provider failed to accept %s: %s",
                                outcome.rule_name, str(err))

    def invoke(self, rule, context):
        """Invokes a single applicable rule and returns its outcome"""
        call = _Invocation(rule, context)
        start = time.time()
        finished = call.start(self.settings.rule_timeout)
        elapsed = time.time() - start
        if not finished:
            fault = RuleTimeout(
                "%s timed out after %gs" % (rule.name,
                                            self.settings.rule_timeout),
                rule.name)
            logging.error(str(fault))
            return RuleOutcome.from_rule(rule, Result.Error, str(fault),
                                         fault, elapsed)
        if call.error is not None:
            fault = RuleInvocationFault(
                "%s raised %s: %s" % (rule.name,
                                      call.error.__class__.__name__,
                                      str(call.error)),
                rule.name, call.error)
            logging.warning(str(fault))
            return RuleOutcome.from_rule(rule, Result.Error, str(fault),
                                         fault, elapsed)
        try:
            result, info = call.value
        except (TypeError, ValueError):
            result, info = None, None
        if result == Result.Pass:
            return RuleOutcome.from_rule(rule, result, None, None, elapsed)
        elif result == Result.Fail:
            message = str(info) if info is not None else \
                (rule.error_message or rule.description)
            logging.debug("%s failed: %s", rule.name, message)
            return RuleOutcome.from_rule(rule, result, message, info,
                                         elapsed)
        elif result == Result.NotApplicable:
            return RuleOutcome.from_rule(rule, result,
                                         RUNTIME_NOT_APPLICABLE, None,
                                         elapsed)
        fault = RuleInvocationFault(
            "%s returned %s" % (rule.name, repr(call.value)), rule.name)
        logging.warning(str(fault))
        return RuleOutcome.from_rule(rule, Result.Error, str(fault), fault,
                                     elapsed)
