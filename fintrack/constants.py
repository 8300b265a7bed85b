"""Supported currencies and assets."""

SUPPORTED_CURRENCIES = {
    "KZT": "Kazakhstani tenge",
    "RUB": "Russian ruble",
    "USD": "US dollar",
    "EUR": "Euro",
    "GBP": "British pound",
    "JPY": "Japanese yen",
    "CNY": "Chinese yuan",
}

CURRENCY_CODES = list(SUPPORTED_CURRENCIES)

SUPPORTED_CRYPTOS = {
    "USDT": "Tether",
    "ETH": "Ethereum",
    "BTC": "Bitcoin",
    "BNB": "Binance Coin",
    "SOL": "Solana",
    "XRP": "Ripple",
    "ADA": "Cardano",
    "DOGE": "Dogecoin",
}

CRYPTO_CODES = list(SUPPORTED_CRYPTOS)

SUPPORTED_STOCKS = ["SBER", "GAZP", "YNDX", "AAPL", "GOOGL", "MSFT", "TSLA", "NVDA"]

CURRENCY_SYMBOLS = {
    "RUB": "₽",
    "USD": "$",
    "EUR": "€",
    "KZT": "₸",
    "CNY": "¥",
    "GBP": "£",
    "JPY": "¥",
}
