import unittest

from feed.notifications import LoggingNotifier, RecordingNotifier


class NotifierTest(unittest.TestCase):
    def test_logging_notifier_levels(self):
        notifier = LoggingNotifier()
        with self.assertLogs("feed.notifications", level="INFO") as logs:
            notifier.notify("Expense Added", '"Coffee" has been added.')
            notifier.notify("Error", "Failed to add expense.", "destructive")
        self.assertEqual(
            logs.output,
            [
                'INFO:feed.notifications:Expense Added: "Coffee" has been added.',
                "WARNING:feed.notifications:Error: Failed to add expense.",
            ],
        )

    def test_recording_notifier_filters_errors(self):
        notifier = RecordingNotifier()
        notifier.notify("Expense Added", "ok")
        notifier.notify("Error", "Failed to delete expense.", "destructive")
        self.assertEqual(len(notifier.notifications), 2)
        self.assertEqual([n.description for n in notifier.errors], ["Failed to delete expense."])


if __name__ == "__main__":
    unittest.main()
