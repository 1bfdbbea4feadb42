import os
from dataclasses import dataclass, field

from functions import DefinitionError, Functions, SwitchNotReady, logger_ovslab


@dataclass
class FlowResult:
    applied: int = 0
    failed: int = 0
    files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.applied + self.failed


LEARNING_FLOWS = ["table=0, priority=0, actions=flood"]

# Fixed-ofport demo for the default topology: c1 -> c2 ICMP, c2 -> c3 TCP, c3 -> c1 UDP
EXAMPLE_FLOWS = [
    "in_port=101,icmp,actions=output:102",
    "in_port=102,tcp,actions=output:103",
    "in_port=103,udp,actions=output:101",
    "priority=0,actions=drop",
]


class FlowReconciler:
    """
    Replaces the bridge's flow table with the rules of a playground's flows/ directory.

    The playground's rule files are authoritative: the table is flushed and
    every rule re-added, one ovs-ofctl call per line. A rule the switch rejects
    is reported and skipped.
    """

    def __init__(self, switch):
        self.switch = switch

    @staticmethod
    def rule_files(playground) -> list[str]:
        directory = playground.flows_dir
        if directory is None or not os.path.isdir(directory):
            return []

        files = []
        for filename in sorted(os.listdir(directory)):
            if filename.startswith(".") or filename.upper().startswith("README"):
                continue
            filepath = os.path.join(directory, filename)
            if os.path.isfile(filepath):
                files.append(filepath)
        return files

    @staticmethod
    def parse_rules(content: str) -> list[str]:
        rules = []
        for line in content.splitlines():
            rule = line.split("#", 1)[0].strip()
            if rule:
                rules.append(rule)
        return rules

    def rules(self, playground) -> list[tuple[str, str]]:
        """Ordered (file, rule) pairs: files by name, then line order"""
        rules = []
        for filepath in self.rule_files(playground):
            try:
                content = Functions.load(filepath)
            except (OSError, UnicodeDecodeError) as e:
                raise DefinitionError(playground.name, f"cannot read flow file {os.path.basename(filepath)}: {e}")
            rules += [(filepath, rule) for rule in self.parse_rules(content)]
        return rules

    def flush(self, state) -> bool:
        if not self.switch.exists(state.bridge):
            logger_ovslab.warning(f"Bridge {state.bridge} does not exist")
            return False
        if self.switch.flush_flows(state.bridge):
            logger_ovslab.info(f"Flushed flows on {state.bridge}")
            return True
        logger_ovslab.warning(f"Failed to flush flows on {state.bridge}")
        return False

    def apply(self, state, playground) -> FlowResult:
        if not self.switch.exists(state.bridge):
            raise SwitchNotReady(state.bridge)

        result = FlowResult()
        if playground.flows_dir is None or not os.path.isdir(playground.flows_dir):
            logger_ovslab.info(f"Playground {playground.name} has no flows directory, leaving the flow table alone")
            return result

        result.files = self.rule_files(playground)
        rules = self.rules(playground)
        self.flush(state)

        logger_ovslab.info(f"Applying {len(rules)} flow rule(s) from {len(result.files)} file(s)")
        return self._add(state, result, rules)

    def add(self, state, rules, replace=False) -> FlowResult:
        """Add a built-in rule set such as LEARNING_FLOWS, flushing the table first when replace is set"""
        if not self.switch.exists(state.bridge):
            raise SwitchNotReady(state.bridge)
        if replace:
            self.flush(state)
        return self._add(state, FlowResult(), [("built-in", rule) for rule in rules])

    def _add(self, state, result, rules) -> FlowResult:
        for filepath, rule in rules:
            if self.switch.add_flow(state.bridge, rule):
                result.applied += 1
                logger_ovslab.debug(f"Added flow: {rule}")
            else:
                result.failed += 1
                result.errors.append(rule)
                logger_ovslab.warning(f"Failed to add flow from {os.path.basename(filepath)}: {rule}")

        if result.failed:
            logger_ovslab.warning(f"Flows applied: {result.applied}, failed: {result.failed}")
        else:
            logger_ovslab.info(f"Flows applied: {result.applied}")
        return result

    def dump(self, state) -> list[str]:
        if not self.switch.exists(state.bridge):
            raise SwitchNotReady(state.bridge)
        return self.switch.dump_flows(state.bridge)
