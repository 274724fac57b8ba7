from abc import ABC, abstractmethod


class AbstractHolidayClient(ABC):
	"""Interface for public-holiday providers."""

	@abstractmethod
	async def fetch_month(self, year: int, month: int) -> dict[str, str]:
		"""Return the holidays of one month.

		Args:
			year: Four-digit year.
			month: Month number, 1-12.

		Returns:
			dict[str, str]: ``YYYY-MM-DD`` → holiday name.

		Raises:
			UpstreamAppError: If the provider call fails or returns an error result.
		"""
		...
