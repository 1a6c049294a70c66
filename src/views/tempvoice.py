"""
Embeds, vue de contrôle et textes pour les rooms TempVoice.

Le panneau expose 16 boutons (grille 4×4). Chaque bouton porte un custom_id stable
`tempvoice:<action>:<channel_id>` : les clics sont routés par le dispatcher via
`on_interaction`, ce qui permet aux anciens panneaux de fonctionner après un redémarrage.
"""
from __future__ import annotations

import re
from typing import Optional, Tuple

import discord

CUSTOM_ID_PREFIX = "tempvoice"
_CUSTOM_ID_RE = re.compile(rf"^{CUSTOM_ID_PREFIX}:([a-z_]+):(\d+)$")

# (action, label, style) — ordre = lecture ligne par ligne de la grille
BUTTONS: list[tuple[str, str, discord.ButtonStyle]] = [
    ("rename", "🏷 Nom", discord.ButtonStyle.primary),
    ("limit_plus", "➕ Limite", discord.ButtonStyle.success),
    ("limit_minus", "➖ Limite", discord.ButtonStyle.danger),
    ("privacy", "🔐 Privé", discord.ButtonStyle.secondary),

    ("trust", "🟩 Trust", discord.ButtonStyle.success),
    ("untrust", "⬜ Untrust", discord.ButtonStyle.secondary),
    ("invite", "✉️ Inviter", discord.ButtonStyle.primary),
    ("kick", "👢 Expulser", discord.ButtonStyle.danger),

    ("ban", "⛔ Bannir", discord.ButtonStyle.danger),
    ("unban", "✅ Débannir", discord.ButtonStyle.success),
    ("hide", "👻 Masquer", discord.ButtonStyle.secondary),
    ("reveal", "👁 Afficher", discord.ButtonStyle.primary),

    ("claim", "👑 Réclamer", discord.ButtonStyle.primary),
    ("transfer", "🔁 Transférer", discord.ButtonStyle.secondary),
    ("delete", "🗑 Supprimer", discord.ButtonStyle.danger),
    ("more", "⚙ Infos", discord.ButtonStyle.secondary),
]


def make_custom_id(action: str, channel_id: int) -> str:
    return f"{CUSTOM_ID_PREFIX}:{action}:{channel_id}"


def parse_custom_id(custom_id: str | None) -> Optional[Tuple[str, int]]:
    m = _CUSTOM_ID_RE.match(custom_id or "")
    if not m:
        return None
    return m.group(1), int(m.group(2))


def _mentions(ids, limit: int = 8) -> str:
    return ", ".join(f"<@{u}>" for u in sorted(ids)[:limit]) or "(vide)"


def build_control_embed(room, channel: discord.VoiceChannel) -> discord.Embed:
    embed = discord.Embed(title=f"🔶 TempVoice — {channel.name}", color=discord.Color.gold())
    embed.description = "Utilise les boutons pour contrôler ta room."
    embed.add_field(name="Propriétaire", value=f"<@{room.owner}>", inline=True)
    embed.add_field(name="Limite", value=str(room.user_limit or "∞"), inline=True)
    embed.add_field(name="Privé", value="Oui" if room.private else "Non", inline=True)
    embed.add_field(name="Masqué", value="Oui" if room.hidden else "Non", inline=True)
    embed.set_footer(text=f"Channel ID: {channel.id}")
    return embed


def build_details_embed(room, channel: discord.VoiceChannel) -> discord.Embed:
    embed = build_control_embed(room, channel)
    embed.add_field(name="Co-propriétaires", value=_mentions(room.co_owners), inline=False)
    embed.add_field(name="Trusted", value=_mentions(room.trusted), inline=False)
    embed.add_field(name="Bannis", value=_mentions(room.banned), inline=False)
    embed.add_field(name="Créée", value=f"<t:{int(room.created_at)}:R>", inline=False)
    return embed


def build_control_view(channel_id: int) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    for index, (action, label, style) in enumerate(BUTTONS):
        view.add_item(discord.ui.Button(
            label=label,
            style=style,
            custom_id=make_custom_id(action, channel_id),
            row=index // 4,
        ))
    return view


# ---- prompts du collecteur ----
PROMPTS = {
    "rename": "Écris `name: Nouveau nom` dans ce salon dans les 30s pour renommer la room.",
    "invite": "Mentionne l'utilisateur à inviter en MP (30s).",
    "kick": "Mentionne le membre à expulser du vocal (30s).",
    "ban": "Mentionne l'utilisateur à bannir du vocal (30s).",
    "unban": "Mentionne l'utilisateur à débannir (30s).",
    "transfer": "Mentionne le nouveau propriétaire (30s).",
}


# ---- réponses à l'acteur ----
def msg_renamed(name: str) -> str: return f"✅ Renommé en **{name}**"
def msg_no_name() -> str: return "❌ Aucun nom fourni."
def msg_no_mention() -> str: return "❌ Aucune mention."
def msg_limit(value: int) -> str: return f"Limite fixée à {value}" if value else "Limite retirée (illimité)"
def msg_private(enabled: bool) -> str: return "🔐 Room passée en PRIVÉ" if enabled else "🔓 Room passée en PUBLIC"
def msg_trusted(tag: str) -> str: return f"🟩 {tag} est trusted."
def msg_untrusted(tag: str) -> str: return f"⬜ {tag} n'est plus trusted."
def msg_invite_sent(tag: str) -> str: return f"✉️ Invitation envoyée à {tag}"
def msg_invite_failed() -> str: return "❌ Impossible d'envoyer un MP à cet utilisateur."
def msg_not_in_room() -> str: return "❌ Ce membre n'est pas dans la room."
def msg_kicked(tag: str) -> str: return f"✅ {tag} expulsé"
def msg_banned(tag: str) -> str: return f"⛔ {tag} banni du vocal"
def msg_cannot_ban_owner() -> str: return "❌ Impossible de bannir le propriétaire."
def msg_unbanned(tag: str) -> str: return f"✅ {tag} débanni."
def msg_hidden(hidden: bool) -> str: return "👻 Room masquée." if hidden else "👁 Room visible."
def msg_claimed() -> str: return "👑 Tu es maintenant propriétaire."
def msg_transferred(tag: str) -> str: return f"🔁 Propriété transférée à {tag}"
def msg_deleted() -> str: return "🗑 Room supprimée."
def msg_unknown_action() -> str: return "Action inconnue."
def msg_not_registered() -> str: return "Salon non enregistré."
def msg_channel_missing() -> str: return "Salon introuvable."
def msg_internal_error() -> str: return "Erreur interne, action annulée."
def msg_not_in_voice() -> str: return "Tu n'es dans aucune room TempVoice."
def msg_panel_posted() -> str: return "Panneau republié."
def msg_panel_failed() -> str: return "Impossible de publier le panneau."


# ---- lignes du salon de logs ----
def log_create(member_id: int, name: str) -> str: return f"🎧 [Création] <@{member_id}> -> {name}"
def log_delete_empty(name: str) -> str: return f"🗑️ [Suppression] Room vide {name}"
def log_delete(name: str, tag: str) -> str: return f"🗑️ {name} supprimée par {tag}"
def log_renamed(tag: str, channel_id: int, name: str) -> str: return f"🏷️ {tag} a renommé {channel_id} -> {name}"
def log_limit(name: str, value: int, tag: str) -> str: return f"👥 Limite de {name} -> {value} par {tag}"
def log_private(name: str, enabled: bool, tag: str) -> str:
    return f"🔐 {name} passée en PRIVÉ par {tag}" if enabled else f"🔓 {name} passée en PUBLIC par {tag}"
def log_trust(name: str, tag: str, trusted: bool) -> str:
    return f"🟩 {tag} trusted sur {name}" if trusted else f"⬜ {tag} untrusted sur {name}"
def log_kick(target: str, name: str, tag: str) -> str: return f"👢 {target} expulsé de {name} par {tag}"
def log_ban(target: str, name: str, tag: str) -> str: return f"⛔ {target} banni de {name} par {tag}"
def log_unban(target: str, name: str, tag: str) -> str: return f"✅ {target} débanni de {name} par {tag}"
def log_hidden(name: str, hidden: bool, tag: str) -> str:
    return f"🙈 {name} masquée par {tag}" if hidden else f"👁 {name} affichée par {tag}"
def log_claim(tag: str, name: str) -> str: return f"👑 {tag} a réclamé {name}"
def log_transfer(name: str, tag: str) -> str: return f"🔁 Propriété de {name} transférée à {tag}"


# ---- commandes /tempvoice ----
def fmt_room_line(room, name: str | None) -> str:
    return f"`{room.channel_id}` {name if name else '(inconnu)'} — <@{room.owner}> — limite {room.user_limit or '∞'}"

def msg_no_room() -> str: return "Aucune room active."

def msg_cleanup_report(removed: int, emptied: int, report: dict) -> str:
    return (
        f"Nettoyage terminé : {removed} entrée(s) orpheline(s) purgée(s), {emptied} room(s) vide(s) supprimée(s).\n"
        f"Rooms en registre : {report.get('rooms_registry', 0)} | salons manquants : {len(report.get('missing_channels', []))}"
    )
